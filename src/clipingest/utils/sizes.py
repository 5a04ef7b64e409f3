"""Human-readable byte sizes."""

_UNITS = ["KiB", "MiB", "GiB", "TiB"]


def format_file_size(size_bytes: int | float) -> str:
    """Format bytes as a human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Human-readable string (e.g., "1 byte", "42 bytes", "1.5 MiB")
    """
    if size_bytes == 1:
        return "1 byte"
    if size_bytes < 1024:
        return f"{size_bytes:.0f} bytes"

    value = size_bytes / 1024
    for unit in _UNITS:
        if value < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} PiB"
