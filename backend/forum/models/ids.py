# forum/models/ids.py
"""
Record identifiers: 24 hexadecimal characters (4-byte creation timestamp
followed by 8 random bytes), the format `is_valid_identifier` accepts.
"""
import secrets
import time


def new_id() -> str:
    return f"{int(time.time()) & 0xFFFFFFFF:08x}{secrets.token_hex(8)}"
