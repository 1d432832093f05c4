# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/archconfigs/config/models.py

from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class DatasetSpec(_Frozen):
    name: str                                   # relative to the pool, e.g. "ROOT/arch"
    properties: Dict[str, str] = Field(default_factory=dict)


class PoolSpec(_Frozen):
    """zpool create -o/-O settings."""
    options: Dict[str, str] = Field(default_factory=dict)        # -o
    fs_options: Dict[str, str] = Field(default_factory=dict)     # -O
    root_dataset: str = "ROOT/arch"
    datasets: List[DatasetSpec] = Field(default_factory=list)
    swap_properties: Dict[str, str] = Field(default_factory=dict)
    cachefile: str = "/etc/zfs/zpool.cache"
    services: List[str] = Field(default_factory=list)


class DiskSpec(_Frozen):
    efi_label: str = "EFI"
    efi_start: str = "1MiB"
    efi_end: str = "1GiB"
    zfs_label: str = "ZFS"
    efi_fs_label: str = "ESP"


class ArchzfsSpec(_Frozen):
    server: str = "https://archzfs.com/$repo/$arch"
    sig_level: str = "Optional TrustAll"
    key: str = "DDF7DB817396A49B2A2723F7403BD972F75D9D76"
    archiso_init_url: str = "https://raw.githubusercontent.com/eoli3n/archiso-zfs/master/init"


class BootSpec(_Frozen):
    kernels: List[str] = Field(default_factory=lambda: ["linux", "linux-zen", "linux-lts"])
    microcode: List[str] = Field(default_factory=lambda: ["intel-ucode", "amd-ucode"])
    zfs_options: str = "rw zfs_import_dir=/dev/"


class HyprlandSpec(_Frozen):
    packages: List[str] = Field(default_factory=list)
    nvidia_modules: List[str] = Field(default_factory=list)
    nvidia_kernel_params: List[str] = Field(default_factory=list)
    nvidia_services: List[str] = Field(default_factory=list)
    audio_user_units: List[str] = Field(default_factory=list)
    power_services: List[str] = Field(default_factory=list)
    bluetooth_settings: Dict[str, Dict[str, str]] = Field(default_factory=dict)   # section -> key -> value
    fwupd_units: List[str] = Field(default_factory=list)
    sensor_services: List[str] = Field(default_factory=list)


class ParuSpec(_Frozen):
    build_deps: List[str] = Field(default_factory=lambda: ["base-devel", "git", "rustup"])
    aur_url: str = "https://aur.archlinux.org/paru.git"
    rust_toolchain: str = "stable"


class Profile(_Frozen):
    """Declarative data for one machine: packages, layouts, services."""
    name: str = "xps9500"
    hardware_model: str = "XPS 15 9500"
    disk: DiskSpec = DiskSpec()
    pool: PoolSpec = PoolSpec()
    archzfs: ArchzfsSpec = ArchzfsSpec()
    boot: BootSpec = BootSpec()
    hyprland: HyprlandSpec = HyprlandSpec()
    paru: ParuSpec = ParuSpec()


def partition_path(disk: str, number: int) -> str:
    """/dev/nvme0n1 -> /dev/nvme0n1p1, /dev/sda -> /dev/sda1"""
    sep = "p" if disk[-1:].isdigit() else ""
    return f"{disk}{sep}{number}"


class RunContext(_Frozen):
    """
    Resolved parameters for one invocation. Built once before the runner
    starts and shared read-only with every step.
    """
    pipeline: str
    profile: Profile = Profile()
    root: Path = Path("/")                  # filesystem the steps operate on
    pool_name: str = "zroot"
    disk: str = "/dev/nvme0n1"
    root_dataset: Optional[str] = None      # defaults to <pool>/<profile.pool.root_dataset>
    swap_size: Optional[str] = None
    github_user: str = "danielbodnar"
    target_user: Optional[str] = None
    target_home: Optional[Path] = None
    mount_root: Path = Path("/mnt")
    build_dir: Path = Path("/tmp/paru-build")
    assume_yes: bool = False
    dry_run: bool = False
    command_timeout: Optional[float] = None   # None = block until the tool exits
    run_id: Optional[str] = None

    def path(self, p: str | Path) -> Path:
        """Resolve an absolute system path under the configured root."""
        return self.root / str(p).lstrip("/")

    @property
    def efi_partition(self) -> str:
        return partition_path(self.disk, 1)

    @property
    def zfs_partition(self) -> str:
        return partition_path(self.disk, 2)

    @property
    def root_dataset_name(self) -> str:
        return self.root_dataset or f"{self.pool_name}/{self.profile.pool.root_dataset}"

    def dataset(self, relative: str) -> str:
        return f"{self.pool_name}/{relative}"

    def template_vars(self) -> Dict[str, str]:
        return {
            "pool": self.pool_name,
            "disk": self.disk,
            "root_dataset": self.root_dataset_name,
            "mount_root": str(self.mount_root),
            "user": self.target_user or "",
            "github_user": self.github_user,
            "efi_partition": self.efi_partition,
            "zfs_partition": self.zfs_partition,
            "build_dir": str(self.build_dir),
        }
