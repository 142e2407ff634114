"""Configuration for a provisioning run.

All paths, URLs, package lists and feature flags live in one dataclass that
is built once at startup (defaults, then an optional JSON file, then CLI
flags) and passed to everything that needs it.
"""

import dataclasses
import getpass
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from debian_tweaks.models import PackageSource, PackageSpec
from debian_tweaks.vendor import VENDOR_SCRIPTS

DEFAULT_CODENAME = "bookworm"
DEFAULT_DISTRO_ID = "debian"
SHELLS = ("zsh", "fish")


def read_os_release(os_release: Path) -> Dict[str, str]:
    """Parse KEY=value pairs of an os-release file; missing file gives {}."""
    values: Dict[str, str] = {}
    try:
        for line in os_release.read_text(encoding="utf-8").splitlines():
            key, _, value = line.partition("=")
            if key.strip() and value.strip():
                values[key.strip()] = value.strip().strip('"')
    except OSError:
        pass
    return values


def detect_codename(os_release: Path) -> str:
    """Read VERSION_CODENAME from an os-release file."""
    return read_os_release(os_release).get("VERSION_CODENAME", DEFAULT_CODENAME)


def detect_distro(os_release: Path) -> str:
    """Read the distribution ID (debian, ubuntu, ...) from an os-release file."""
    return read_os_release(os_release).get("ID", DEFAULT_DISTRO_ID).lower()


@dataclass
class Config:
    """Configuration settings for the Debian desktop setup."""

    # User and paths
    USERNAME: str = field(default_factory=getpass.getuser)
    HOME: Path = field(default_factory=Path.home)
    DOWNLOADS_DIR: Optional[Path] = None
    LOG_FILE: Optional[Path] = None
    LOCK_FILE: Optional[Path] = None
    DOTFILES_DIR: Optional[Path] = None
    DOTFILES_SOURCE: Optional[Path] = None
    XDG_CONFIG_HOME: Optional[Path] = None
    ZSH_CUSTOM: Optional[Path] = None

    # System locations
    OS_RELEASE: Path = field(default_factory=lambda: Path("/etc/os-release"))
    KEYRINGS_DIR: Path = field(default_factory=lambda: Path("/etc/apt/keyrings"))
    SOURCES_DIR: Path = field(default_factory=lambda: Path("/etc/apt/sources.list.d"))
    SOURCES_LIST: Path = field(default_factory=lambda: Path("/etc/apt/sources.list"))
    LOCALE_GEN: Path = field(default_factory=lambda: Path("/etc/locale.gen"))

    # Distribution
    DISTRO_ID: Optional[str] = None
    CODENAME: Optional[str] = None
    ARCH: str = "amd64"
    DEBIAN_MIRROR: str = "http://deb.debian.org/debian"

    # Feature flags
    WITH_VIRTUALIZATION: bool = False
    WITH_KERNEL: bool = True
    DEFAULT_SHELL: str = "zsh"
    SKIP_STAGES: List[str] = field(default_factory=list)
    ALLOW_ROOT: bool = False

    # Network behaviour
    DOWNLOAD_TIMEOUT: float = 60.0
    DOWNLOAD_RETRIES: int = 3
    DOWNLOAD_BACKOFF: float = 2.0
    ASSET_SELECTOR: Optional[str] = None
    GITHUB_TOKEN: Optional[str] = field(
        default_factory=lambda: os.environ.get("GITHUB_TOKEN") or None
    )

    # Commands that must exist before any step runs
    REQUIRED_COMMANDS: List[str] = field(
        default_factory=lambda: ["sudo", "apt-get", "dpkg", "dpkg-query"]
    )

    # Package lists
    PREREQUISITE_PACKAGES: List[str] = field(
        default_factory=lambda: [
            "curl",
            "gpg",
            "git",
            "lsb-release",
            "ca-certificates",
            "stow",
        ]
    )
    UNWANTED_PACKAGES: List[str] = field(
        default_factory=lambda: [
            "gnome-games",
            "evolution",
            "cheese",
            "gnome-maps",
            "gnome-music",
            "gnome-sound-recorder",
            "rhythmbox",
            "gnome-weather",
            "gnome-clocks",
            "gnome-contacts",
            "gnome-characters",
            "totem",
        ]
    )
    UNWANTED_PATTERNS: List[str] = field(default_factory=lambda: ["thunderbird*"])
    REQUIRED_PACKAGES: List[str] = field(
        default_factory=lambda: [
            "gnome-tweaks",
            "btop",
            "htop",
            "neofetch",
            "flameshot",
            "xclip",
            "gimagereader",
            "tesseract-ocr",
            "tesseract-ocr-fra",
            "tesseract-ocr-eng",
            "gnome-shell-extension-appindicator",
            "gnome-shell-extension-manager",
            "wget",
            "build-essential",
            "node-typescript",
            "bat",
            "exa",
            "fzf",
            "vlc",
            "remmina",
            "fd-find",
            "fonts-firacode",
            "zsh",
        ]
    )
    BACKPORTS_PACKAGES: List[str] = field(
        default_factory=lambda: [
            "libreoffice",
            "pipewire",
            "pipewire-audio",
            "pipewire-pulse",
            "mesa-vulkan-drivers",
        ]
    )
    NEOVIM_BUILD_DEPS: List[str] = field(
        default_factory=lambda: [
            "build-essential",
            "cmake",
            "git",
            "ninja-build",
            "gettext",
            "unzip",
            "curl",
        ]
    )
    KERNEL_PACKAGES: List[str] = field(
        default_factory=lambda: [
            "linux-image-liquorix-amd64",
            "linux-headers-liquorix-amd64",
        ]
    )
    VIRTUALIZATION_PACKAGES: List[str] = field(
        default_factory=lambda: [
            "qemu-system-x86",
            "qemu-utils",
            "libvirt-daemon-system",
            "libvirt-clients",
            "virt-manager",
            "bridge-utils",
            "virtinst",
            "ovmf",
            "dnsmasq-base",
        ]
    )
    VIRTUALIZATION_GROUPS: List[str] = field(
        default_factory=lambda: ["libvirt", "libvirt-qemu"]
    )
    LOCALES: List[str] = field(default_factory=lambda: ["fr_CH.UTF-8"])

    # Third-party APT repositories: name -> key, uri, suite, components, packages
    THIRD_PARTY_REPOS: Dict[str, Dict[str, Any]] = field(
        default_factory=lambda: {
            "brave-browser": {
                "key_url": "https://brave-browser-apt-release.s3.brave.com/brave-browser-archive-keyring.gpg",
                "uri": "https://brave-browser-apt-release.s3.brave.com/",
                "suite": "stable",
                "components": ["main"],
                "packages": ["brave-browser"],
            },
            "google-chrome": {
                "key_url": "https://dl.google.com/linux/linux_signing_key.pub",
                "uri": "http://dl.google.com/linux/chrome/deb/",
                "suite": "stable",
                "components": ["main"],
                "packages": ["google-chrome-stable"],
            },
            "vscode": {
                "key_url": "https://packages.microsoft.com/keys/microsoft.asc",
                "uri": "https://packages.microsoft.com/repos/code",
                "suite": "stable",
                "components": ["main"],
                "packages": ["code"],
            },
        }
    )
    LIQUORIX_REPO: Dict[str, Any] = field(
        default_factory=lambda: {
            "key_url": "https://liquorix.net/liquorix-keyring.gpg",
            "uri": "http://liquorix.net/debian",
            "suite": "{codename}",
            "components": ["main"],
        }
    )

    # .deb packages installed outside APT repositories
    DEB_PACKAGES: List[PackageSpec] = field(
        default_factory=lambda: [
            PackageSpec(
                name="obsidian",
                source=PackageSource.GITHUB_RELEASE,
                repo="obsidianmd/obsidian-releases",
                pattern=r"_amd64\.deb$",
            ),
            PackageSpec(
                name="proton-mail",
                source=PackageSource.DEB_URL,
                url="https://proton.me/download/mail/linux/ProtonMail-desktop-beta.deb",
            ),
        ]
    )

    # Git sources
    NEOVIM_REPO: str = "https://github.com/neovim/neovim"
    NEOVIM_BRANCH: str = "stable"
    KICKSTART_REPO: str = "https://github.com/nvim-lua/kickstart.nvim.git"
    OH_MY_ZSH_REPO: str = "https://github.com/ohmyzsh/ohmyzsh.git"
    NERD_FONTS_REPO: str = "https://github.com/ryanoasis/nerd-fonts.git"
    NERD_FONTS: List[str] = field(
        default_factory=lambda: ["FiraCode", "JetBrainsMono"]
    )
    POP_SHELL_REPO: str = "https://github.com/pop-os/shell.git"
    POP_SHELL_BRANCH: str = "master_jammy"
    ZSH_PLUGINS: List[Tuple[str, str, Optional[int]]] = field(
        default_factory=lambda: [
            ("zsh-syntax-highlighting", "https://github.com/zsh-users/zsh-syntax-highlighting.git", None),
            ("zsh-autocomplete", "https://github.com/marlonrichert/zsh-autocomplete.git", 1),
            ("fast-syntax-highlighting", "https://github.com/zdharma-continuum/fast-syntax-highlighting.git", None),
            ("zsh-autosuggestions", "https://github.com/zsh-users/zsh-autosuggestions.git", None),
        ]
    )

    # Remote files and vendor installers (see vendor.VENDOR_SCRIPTS)
    ZSHRC_URL: str = "https://raw.githubusercontent.com/tonybeyond/ubuntutweak/refs/heads/main/.zshrc"
    VENDOR_TOOLS: List[str] = field(
        default_factory=lambda: ["tailscale", "netbird", "eve-ng-integration"]
    )
    FLATHUB_URL: str = "https://dl.flathub.org/repo/flathub.flatpakrepo"

    # Dotfiles copied from DOTFILES_SOURCE: source name -> destination relative to HOME
    CONFIG_FILES: Dict[str, str] = field(default_factory=dict)

    GNOME_EXTENSIONS: List[str] = field(
        default_factory=lambda: [
            "pop-shell@system76.com",
            "user-theme@gnome-shell-extensions.gcampax.github.com",
            "blur-my-shell@aunetx",
        ]
    )

    def __post_init__(self):
        """Initialize derived configuration values after the dataclass is created."""
        self.HOME = Path(self.HOME)
        if self.DOWNLOADS_DIR is None:
            self.DOWNLOADS_DIR = self.HOME / "Downloads"
        if self.LOG_FILE is None:
            self.LOG_FILE = self.DOWNLOADS_DIR / "install.log"
        if self.LOCK_FILE is None:
            self.LOCK_FILE = self.DOWNLOADS_DIR / ".debian-tweaks.lock"
        if self.DOTFILES_DIR is None:
            self.DOTFILES_DIR = self.HOME / "dotfiles"
        if self.DOTFILES_SOURCE is None:
            self.DOTFILES_SOURCE = self.DOWNLOADS_DIR / "debiantweaks"
        if self.XDG_CONFIG_HOME is None:
            xdg = os.environ.get("XDG_CONFIG_HOME")
            self.XDG_CONFIG_HOME = Path(xdg) if xdg else self.HOME / ".config"
        if self.ZSH_CUSTOM is None:
            custom = os.environ.get("ZSH_CUSTOM")
            self.ZSH_CUSTOM = (
                Path(custom) if custom else self.OH_MY_ZSH_DIR / "custom"
            )
        if self.DISTRO_ID is None:
            self.DISTRO_ID = detect_distro(self.OS_RELEASE)
        if self.CODENAME is None:
            self.CODENAME = detect_codename(self.OS_RELEASE)
        if self.DEFAULT_SHELL not in SHELLS:
            raise ValueError(
                f"DEFAULT_SHELL must be one of {', '.join(SHELLS)}, got {self.DEFAULT_SHELL!r}"
            )
        self.DEB_PACKAGES = [
            p if isinstance(p, PackageSpec) else PackageSpec.from_dict(p)
            for p in self.DEB_PACKAGES
        ]
        self.ZSH_PLUGINS = [tuple(p) for p in self.ZSH_PLUGINS]
        unknown = [name for name in self.VENDOR_TOOLS if name not in VENDOR_SCRIPTS]
        if unknown:
            raise ValueError(
                f"Unknown VENDOR_TOOLS {', '.join(unknown)}; known: {', '.join(sorted(VENDOR_SCRIPTS))}"
            )
        names = [p.name for p in self.DEB_PACKAGES]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate DEB_PACKAGES names: {', '.join(duplicates)}")

    @property
    def OH_MY_ZSH_DIR(self) -> Path:
        return self.HOME / ".oh-my-zsh"

    @property
    def NVIM_CONFIG_DIR(self) -> Path:
        return self.XDG_CONFIG_HOME / "nvim"

    @property
    def BACKPORTS_SUITE(self) -> str:
        return f"{self.CODENAME}-backports"

    def secrets(self) -> List[str]:
        return [s for s in (self.GITHUB_TOKEN,) if s]


# ----------------------------------------------------------------
# Loading
# ----------------------------------------------------------------
_PATH_FIELDS = {
    f.name
    for f in dataclasses.fields(Config)
    if "Path" in str(f.type)
}


def _coerce(name: str, value: Any) -> Any:
    if name in _PATH_FIELDS and value is not None:
        return Path(value).expanduser()
    return value


def load_config(
    path: Optional[Union[str, Path]] = None, **overrides: Any
) -> Config:
    """
    Build a Config from defaults, an optional JSON file and keyword overrides.

    JSON keys are matched case-insensitively against Config fields. Overrides
    whose value is None are ignored so unset CLI flags keep file values.

    Args:
        path: Optional path to a JSON object of overrides
        **overrides: Field overrides, usually from CLI flags

    Returns:
        The resulting Config

    Raises:
        ValueError: If the file is not a JSON object or names an unknown field
    """
    known = {f.name for f in dataclasses.fields(Config)}
    values: Dict[str, Any] = {}

    if path is not None:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a JSON object")
        for key, value in data.items():
            name = key.upper()
            if name not in known:
                raise ValueError(f"Unknown config key in {path}: {key}")
            values[name] = _coerce(name, value)

    for key, value in overrides.items():
        if value is None:
            continue
        name = key.upper()
        if name not in known:
            raise ValueError(f"Unknown config override: {key}")
        values[name] = _coerce(name, value)

    return Config(**values)
