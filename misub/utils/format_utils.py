"""
Formatting Utilities
Byte quantities, base64 bodies and download headers
"""
import base64
from urllib.parse import quote

# Characters encodeURIComponent leaves untouched besides alphanumerics.
URI_COMPONENT_SAFE = "-_.!~*'()"

BYTE_UNITS = ["B", "KB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB"]


def format_bytes(value: int, decimals: int = 2) -> str:
    """
    Human readable 1024-based size with trailing zeros trimmed

    Examples:
        0 -> "0 B", 1536 -> "1.5 KB", 1073741824 -> "1 GB"
    """
    amount = float(value or 0)
    if amount <= 0:
        return "0 B"
    index = 0
    while amount >= 1024 and index < len(BYTE_UNITS) - 1:
        amount /= 1024.0
        index += 1
    text = f"{amount:.{max(0, decimals)}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {BYTE_UNITS[index]}"


def encode_base64_text(text: str) -> str:
    return base64.b64encode((text or "").encode("utf-8")).decode("ascii")


def attachment_disposition(filename: str) -> str:
    return f"attachment; filename*=utf-8''{quote(filename or '', safe=URI_COMPONENT_SAFE)}"
