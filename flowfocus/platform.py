import sys


def is_macos() -> bool:
    return sys.platform == "darwin"


def supports_local_notifications() -> bool:
    """Only the macOS Notification Center path is wired up."""
    return is_macos()
