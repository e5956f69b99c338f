import bcrypt

# bcrypt only consumes the first 72 bytes of a secret.
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str, *, rounds: int = 12) -> str:
    hashed = bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
