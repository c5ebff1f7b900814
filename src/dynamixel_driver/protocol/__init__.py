"""Protocol layer: framing, checksum, instruction builders, and response parsing."""

from .framing import (
    DecodeResult,
    DecodeStatus,
    decode_status,
    encode_instruction,
    encode_status,
    parse_status,
)
from .instructions import build_ping, build_read, build_write
from .sync_write import SyncCommand, build_sync_write
