#
# Well-known repository folder paths.
#
from __future__ import annotations

from dataclasses import dataclass

from ..settings import SETTINGS
from ..utils.repo_paths import concat, normalize_repo_path


@dataclass(frozen=True)
class RepositoryPaths:
    home_root: str
    public_root: str

    def get_home_folder_path(self, username: str) -> str:
        return normalize_repo_path(concat(self.home_root, username.strip()))

    def get_public_folder_path(self) -> str:
        return normalize_repo_path(self.public_root)

    def get_root_folder_path(self) -> str:
        return "/"


def default_repository_paths() -> RepositoryPaths:
    return RepositoryPaths(home_root=SETTINGS.home_root, public_root=SETTINGS.public_root)
