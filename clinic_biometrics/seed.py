from .db import SessionLocal, engine, Base
from .encryption_utils import hash_pin
from .logging_config import get_logger, setup_logging
from . import models

logger = get_logger(__name__)


def seed_users():
    # Ensure tables exist
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        if not db.query(models.User).first():
            users = [
                models.User(user_id="U1001", email="alice.perera@example.com", first_name="Alice",
                            last_name="Perera", role="patient", pin_hash=hash_pin("1234")),
                models.User(user_id="U1002", email="sumith.j@example.com", first_name="Sumith",
                            last_name="Jayasuriya", role="doctor", pin_hash=hash_pin("5678")),
                models.User(user_id="U1003", email="rushan.silva@example.com", first_name="Rushan",
                            last_name="Silva", role="receptionist", pin_hash=hash_pin("4321")),
            ]
            db.add_all(users)
            db.commit()
            logger.info("Test users inserted")
        else:
            logger.info("Users already exist, skipping insert")
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging("seed")
    seed_users()
