from typing import List, Optional


class CLIException(Exception):
    """
    Базовое исключение pipe2run.

    description: человекочитаемое описание, которое CLI показывает пользователю.
    logs: шаги, накопленные до момента ошибки.
    """

    def __init__(
        self,
        *args,
        description: str = "Something happend...",
        logs: Optional[List[str]] = None,
    ):
        super().__init__(*args or (description,))
        self.description = description
        self.logs: List[str] = logs or []


class InvalidSpec(CLIException):
    """
    Описание пайплайна отсутствует, не парсится или ссылается на неизвестные стадии.
    Фатально: ни одна задача не запускается.
    """

    def __init__(self, reason: str, path: Optional[str] = None, logs: Optional[List[str]] = None):
        where = f" ({path})" if path else ""
        super().__init__(description=f"Invalid pipeline{where}: {reason}", logs=logs)
        self.reason = reason
        self.path = path


class JobFailed(CLIException):
    """
    Команда задачи завершилась с ненулевым кодом.
    """

    def __init__(self, job: str, command: str, exit_code: int):
        super().__init__(
            description=f"Job {job} failed: command {command!r} exited with code {exit_code}"
        )
        self.job = job
        self.command = command
        self.exit_code = exit_code


class StageFailed(CLIException):
    """
    В стадии упала хотя бы одна задача, следующие стадии не запускаются.
    """

    def __init__(self, stage: str, failures: List[JobFailed]):
        jobs = ", ".join(f.job for f in failures)
        super().__init__(description=f"Stage {stage} failed: {jobs}")
        self.stage = stage
        self.failures = failures
