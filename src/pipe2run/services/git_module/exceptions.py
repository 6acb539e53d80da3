from typing import List, Optional

from exception import CLIException


class GitExceptions(CLIException):
    """
    Базовое исключение подготовки рабочей копии проекта.

    Дополнительно хранит логи (steps), накопленные во время операции.
    """

    def __init__(
        self,
        *args,
        description: str = "Something happend when work with Git",
        logs: Optional[List[str]] = None,
    ) -> None:
        super().__init__(*args, description=description, logs=logs)


class GitCloneError(GitExceptions):
    """
    Ошибка при клонировании удалённого репозитория.
    """

    def __init__(
        self,
        repository: str,
        branch: str,
        logs: Optional[List[str]] = None,
        *args,
    ) -> None:
        description = f"Error to clone repository {repository} in branch {branch}"
        super().__init__(*args, description=description, logs=logs)
        self.repository = repository
        self.branch = branch


class GitLocalPathError(GitExceptions):
    """
    Каталог проекта не существует или не является директорией.
    """

    def __init__(
        self,
        path: str,
        logs: Optional[List[str]] = None,
        *args,
    ) -> None:
        description = f"Error to use local project path {path}"
        super().__init__(*args, description=description, logs=logs)
        self.path = path


class GitRefError(GitExceptions):
    """
    Не удалось определить ref для запуска: нет аргумента, переменной
    CI_COMMIT_REF_NAME и активной ветки (detached HEAD или не git-репозиторий).
    """

    def __init__(
        self,
        path: str,
        logs: Optional[List[str]] = None,
        *args,
    ) -> None:
        description = (
            f"Cannot detect branch for {path}: pass REF explicitly "
            "or set CI_COMMIT_REF_NAME"
        )
        super().__init__(*args, description=description, logs=logs)
        self.path = path
