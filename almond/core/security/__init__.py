from .password import PasswordHasher
from .tokens import decode_token, encode_token

__all__ = ["PasswordHasher", "decode_token", "encode_token"]
