"""Architecture-specific image selection."""

import os
import platform

ARM64_MACHINES = ("arm64", "aarch64")

PHPMYADMIN_ARM64 = "arm64v8/phpmyadmin:latest"
PHPMYADMIN_DEFAULT = "phpmyadmin/phpmyadmin:latest"


def get_architecture() -> str:
    """Machine architecture as reported by the OS (lowercase)."""
    return platform.machine().lower()


def is_arm64() -> bool:
    """Apple Silicon and ARM servers."""
    return get_architecture() in ARM64_MACHINES


def get_phpmyadmin_image() -> str:
    """phpMyAdmin image for this machine; PHPMYADMIN_IMAGE overrides."""
    override = os.environ.get("PHPMYADMIN_IMAGE")
    if override:
        return override
    if is_arm64():
        return PHPMYADMIN_ARM64
    return PHPMYADMIN_DEFAULT
