from __future__ import annotations

import shutil
import sys
from pathlib import Path
from typing import Callable, List, Optional

from .engine import TOOLS
from .errors import DependencyMissingError
from .settings import RunConfiguration


Which = Callable[[str], Optional[str]]


def detect_platform(platform: str = sys.platform, root: Path = Path("/")) -> str:
    """
    Short host label: "macos", "debian", "redhat", "arch", "linux" or the raw platform.
    """
    if platform == "darwin":
        return "macos"
    if not platform.startswith("linux"):
        return platform
    if (root / "etc" / "debian_version").exists():
        return "debian"
    if (root / "etc" / "redhat-release").exists():
        return "redhat"
    if (root / "etc" / "arch-release").exists():
        return "arch"
    return "linux"


PLATFORM_NAMES = {
    "macos": "macOS",
    "debian": "Debian/Ubuntu",
    "redhat": "CentOS/RHEL",
    "arch": "Arch Linux",
    "linux": "Linux (unknown distro)",
}


def platform_name(host: str) -> str:
    return PLATFORM_NAMES.get(host, host)


def install_guidance(host: str) -> List[str]:
    if host == "macos":
        return [
            "Install dependencies on macOS with:",
            "brew install jpegoptim optipng gifsicle webp",
        ]
    if host == "debian":
        return [
            "Install dependencies on Debian/Ubuntu with:",
            "sudo apt-get install jpegoptim optipng gifsicle webp",
        ]
    if host == "redhat":
        return [
            "Install dependencies on CentOS/RHEL/CloudLinux with:",
            "sudo yum install epel-release",
            "sudo yum install jpegoptim optipng gifsicle",
        ]
    return ["Install the missing dependencies using your package manager"]


def required_tools(config: RunConfiguration) -> List[str]:
    # cwebp is never required; without it WebP is simply skipped.
    tools = []
    if not config.skip_jpg:
        tools.append(TOOLS["jpeg"])
    if not config.skip_png:
        tools.append(TOOLS["png"])
    if not config.skip_gif:
        tools.append(TOOLS["gif"])
    return tools


def check_dependencies(config: RunConfiguration, which: Optional[Which] = None, host: Optional[str] = None) -> None:
    which = which or shutil.which
    missing = [tool for tool in required_tools(config) if which(tool) is None]
    if missing:
        raise DependencyMissingError(missing, install_guidance(host or detect_platform()))
