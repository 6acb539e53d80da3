from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .utils import remove_tree


@dataclass
class LocalRepo:
    """
    Рабочая копия проекта, в которой запускается пайплайн.

    root_dir: временная директория клона или сам проект.
    repo_path: корень проекта (CI_PROJECT_DIR).
    logs: текстовые логи шагов подготовки.
    ref: активная ветка, если её удалось определить.
    is_temporary: если True, cleanup() удалит root_dir; если False, не удаляет.
    """

    root_dir: Path
    repo_path: Path
    logs: List[str]
    ref: Optional[str] = None
    is_temporary: bool = True

    def cleanup(self) -> None:
        """
        Удаляет временную папку с клоном, если is_temporary = True.
        Для существующих локальных путей ничего не делает.
        """
        if self.is_temporary and self.root_dir.exists():
            remove_tree(self.root_dir)
