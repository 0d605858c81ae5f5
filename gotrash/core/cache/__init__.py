"""仓库缓存：git 工作树管理与 checkout"""

from gotrash.core.cache.git import GitClient, GoToolchain
from gotrash.core.cache.repo_cache import (
    CacheEntry,
    CacheState,
    RepositoryCache,
    remote_name,
)

__all__ = [
    "CacheEntry",
    "CacheState",
    "GitClient",
    "GoToolchain",
    "RepositoryCache",
    "remote_name",
]
