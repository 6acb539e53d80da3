import os
import re
import stat
import sys
import shutil
from pathlib import Path
from typing import Union


PathLike = Union[str, Path]

# https://..., ssh://..., git://..., file://... и scp-подобный git@host:group/repo.git
_REMOTE_RE = re.compile(r"^(?:[a-z][a-z0-9+.-]*://|[\w.-]+@[\w.-]+:)", re.IGNORECASE)


def is_remote(repository: str) -> bool:
    return bool(_REMOTE_RE.match(repository))


def _on_rm_error(func, path, exc):
    """
    Снимает флаг read-only (частый кейс для .git/objects/pack на Windows)
    и повторяет удаление.
    """
    os.chmod(path, stat.S_IWRITE)
    func(path)


def remove_tree(path: Path) -> None:
    if sys.version_info >= (3, 12):
        shutil.rmtree(path, onexc=_on_rm_error)
    else:
        shutil.rmtree(path, onerror=_on_rm_error)


def ensure_base_temp_dir(path: PathLike) -> Path:
    """
    Гарантирует, что базовый временный каталог существует, и возвращает его как Path.
    """
    base = Path(path)
    base.mkdir(parents=True, exist_ok=True)
    return base
