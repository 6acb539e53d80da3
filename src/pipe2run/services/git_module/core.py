from git import (
    Repo as GitRepo,
    GitCommandError,
    InvalidGitRepositoryError,
    NoSuchPathError,
)

from pathlib import Path
from typing import List, Optional
from pipe2run.config import BASE_TEMP_DIR

from .models import LocalRepo
from .utils import ensure_base_temp_dir, remove_tree, PathLike
from .exceptions import GitCloneError, GitLocalPathError

import tempfile


def _active_branch(repo_obj: GitRepo, logs: List[str]) -> Optional[str]:
    try:
        return repo_obj.active_branch.name
    except TypeError:
        # HEAD отвязан от ветки (detached HEAD), ветку по репозиторию не узнать
        logs.append("HEAD не указывает на ветку (detached HEAD).")
        return None


class GitWorkspace:
    """
    Подготовка рабочей копии проекта для запуска пайплайна:

    - clone(repo, branch): клонирование по URL (GitPython) во временную папку;
    - from_existing_path(path): запуск прямо в существующей директории.

    Оба метода возвращают LocalRepo с путём проекта, логами и активной веткой.
    """

    def __init__(self, default_branch: str = "master", base_dir: Optional[PathLike] = None) -> None:
        self.default_branch = default_branch
        self.base_dir = Path(base_dir) if base_dir is not None else BASE_TEMP_DIR

    async def clone(self, repo: str, branch: Optional[str] = None) -> LocalRepo:
        """
        Клонирует репозиторий (depth=1) в ветке branch.

        :param repo: URL репозитория (https/ssh/file).
        :param branch: ветка или тег; по умолчанию default_branch.
        :raises GitCloneError: при любых ошибках клонирования.
        """
        if branch is None:
            branch = self.default_branch

        logs: List[str] = []

        base_temp = ensure_base_temp_dir(self.base_dir)
        temp_root = Path(tempfile.mkdtemp(prefix="repo_", dir=base_temp))
        repo_dir = temp_root / "repo"

        logs.append(f"Создаём временную папку: {temp_root}")
        logs.append(f"Клонируем репозиторий {repo!r} (ветка {branch}) в {repo_dir}")

        repo_obj: GitRepo | None = None
        try:
            repo_obj = GitRepo.clone_from(
                repo,
                repo_dir,
                branch=branch,
                depth=1,
            )
            logs.append(f"Репозиторий успешно клонирован в {repo_dir}")
        except GitCommandError as e:
            logs.append("GitPython: ошибка при выполнении clone_from.")
            logs.append(str(e))
            remove_tree(temp_root)
            raise GitCloneError(repository=repo, branch=branch, logs=logs)
        finally:
            if repo_obj is not None:
                repo_obj.close()

        return LocalRepo(
            root_dir=temp_root,
            repo_path=repo_dir,
            logs=logs,
            ref=branch,
            is_temporary=True,
        )

    async def from_existing_path(self, path: PathLike) -> LocalRepo:
        """
        Использует существующую директорию как корень проекта.
        Если это git-репозиторий, запоминает активную ветку.

        :raises GitLocalPathError: путь не существует или не является директорией.
        """
        logs: List[str] = []

        repo_path = Path(path).resolve()
        logs.append(f"Используем существующий путь как проект: {repo_path}")

        if not repo_path.exists():
            logs.append("Ошибка: указанный путь не существует.")
            raise GitLocalPathError(path=str(repo_path), logs=logs)
        if not repo_path.is_dir():
            logs.append("Ошибка: указанный путь не является директорией.")
            raise GitLocalPathError(path=str(repo_path), logs=logs)

        ref: Optional[str] = None
        try:
            repo_obj = GitRepo(repo_path, search_parent_directories=True)
        except (InvalidGitRepositoryError, NoSuchPathError):
            logs.append("Директория не является git-репозиторием, ветку определить нельзя.")
        else:
            try:
                ref = _active_branch(repo_obj, logs)
            finally:
                repo_obj.close()
            if ref:
                logs.append(f"Активная ветка: {ref}")

        # при is_temporary = False cleanup() не трогает реальный проект
        return LocalRepo(
            root_dir=repo_path,
            repo_path=repo_path,
            logs=logs,
            ref=ref,
            is_temporary=False,
        )
