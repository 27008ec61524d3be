import os

from ga_beacon.errors import RandomSourceError


def generate_client_id() -> str:
    """Return a new 32 character lowercase hex client id.

    Byte 6 is forced into 0x40-0x4F and byte 8 into 0x80-0xBF. This is not a
    compliant UUID v4 but it is the pattern existing ``cid`` cookies carry.
    """

    try:
        b = bytearray(os.urandom(16))
    except (NotImplementedError, OSError) as e:
        raise RandomSourceError(f"entropy source unavailable: {e}") from e

    b[8] = (b[8] | 0x80) & 0xBF
    b[6] = (b[6] | 0x40) & 0x4F
    return b.hex()
