# workers/extract_worker.py
"""
Out-of-process extraction worker.

Usage:
    python extract_worker.py extract <image_path>   -> {"success": true, "descriptor": [...]}
    python extract_worker.py ocr <image_path>       -> {"success": true, "text": "..."}

Always prints exactly one JSON object on stdout. Install with the
`worker` extra (insightface, onnxruntime, Pillow, pytesseract).
"""
import json
import sys

import numpy as np
from PIL import Image


def get_face_app():
    # imported here so "ocr" calls don't pay for model loading
    from insightface.app import FaceAnalysis

    face_app = FaceAnalysis(name="buffalo_l", providers=["CPUExecutionProvider"])
    face_app.prepare(ctx_id=-1)  # CPU
    return face_app


def image_to_embedding(image_path: str) -> np.ndarray:
    img_np = np.array(Image.open(image_path).convert("RGB"))
    faces = get_face_app().get(img_np)
    if not faces:
        raise ValueError("No face detected")
    # pick largest face
    face = max(faces, key=lambda f: (f.bbox[2]-f.bbox[0])*(f.bbox[3]-f.bbox[1]))
    return face.normed_embedding.astype(np.float32)  # L2-normalized


def image_to_text(image_path: str) -> str:
    import pytesseract

    return pytesseract.image_to_string(Image.open(image_path).convert("RGB"))


def main(argv) -> int:
    if len(argv) != 3 or argv[1] not in ("extract", "ocr"):
        print(json.dumps({"success": False, "error": "usage: extract_worker.py <extract|ocr> <image_path>"}))
        return 2

    operation, image_path = argv[1], argv[2]
    try:
        if operation == "extract":
            result = {"success": True, "descriptor": [float(v) for v in image_to_embedding(image_path)]}
        else:
            result = {"success": True, "text": image_to_text(image_path)}
    except Exception as e:
        result = {"success": False, "error": f"{e.__class__.__name__}: {e}"}

    print(json.dumps(result))
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
