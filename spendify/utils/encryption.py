from cryptography.fernet import Fernet, InvalidToken
from flask import current_app


def init_encryption(app):
    key = app.config.get("CARD_ENCRYPTION_KEY")
    if key:
        Fernet(key)  # fail fast on a malformed key
        return
    if not app.debug and not app.testing:
        raise RuntimeError("CARD_ENCRYPTION_KEY must be set to a Fernet key in production")
    app.logger.warning("CARD_ENCRYPTION_KEY not set; using an ephemeral key for this process")
    app.config["CARD_ENCRYPTION_KEY"] = Fernet.generate_key().decode("utf-8")


def _fernet():
    return Fernet(current_app.config["CARD_ENCRYPTION_KEY"])


def encrypt(text: str) -> str:
    return _fernet().encrypt(text.encode("utf-8")).decode("utf-8")


def decrypt(token: str) -> str:
    try:
        return _fernet().decrypt(token.encode("utf-8")).decode("utf-8")
    except InvalidToken as exc:
        raise ValueError("Failed to decrypt data") from exc


def last_four(card_number: str) -> str:
    return card_number[-4:]


def detect_card_type(card_number: str) -> str:
    return {
        "4": "visa",
        "5": "mastercard",
        "3": "amex",
        "6": "discover",
    }.get(card_number[:1], "other")
