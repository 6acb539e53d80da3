import shutil
from pathlib import Path
from typing import List, Optional, Tuple

from model import Job
from pipe2run.models import Artifact


class ArtifactCollector:
    """
    Собирает артефакты успешных задач.

    project_dir: корень проекта, относительно которого заданы artifacts.paths;
    export_dir: если задан, каждый артефакт копируется в export_dir/<job>/<path>,
                откуда его может забрать внешний публикатор (например, Pages).
    """

    def __init__(self, project_dir: Path, export_dir: Optional[Path] = None) -> None:
        self.project_dir = Path(project_dir)
        self.export_dir = Path(export_dir) if export_dir is not None else None

    def _resolve(self, path: str) -> Path:
        location = (self.project_dir / path).resolve()
        # Не выпускаем артефакты за пределы проекта
        if not location.is_relative_to(self.project_dir.resolve()):
            raise ValueError(f"artifact path {path!r} points outside of the project")
        return location

    def _export(self, job: Job, path: str, location: Path) -> Path:
        target = self.export_dir / job.name / path.rstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.exists() or target.is_symlink():
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        if location.is_dir():
            shutil.copytree(location, target, symlinks=True)
        else:
            shutil.copy2(location, target)
        return target

    def collect(self, job: Job) -> Tuple[List[Artifact], List[str], List[str]]:
        """
        Возвращает (artifacts, logs, warnings).
        Отсутствующий путь: не ошибка задачи, а предупреждение (поведение GitLab).
        """
        artifacts: List[Artifact] = []
        logs: List[str] = []
        warnings: List[str] = []

        for path in job.artifact_paths:
            try:
                location = self._resolve(path)
            except ValueError as e:
                warnings.append(f"Задача {job.name}: {e}")
                continue

            exists = location.exists()
            artifact = Artifact(job=job.name, path=path, location=location, exists=exists)

            if not exists:
                warnings.append(f"Задача {job.name}: артефакт {path} не найден.")
            else:
                logs.append(f"Задача {job.name}: сохранён артефакт {path} ({location})")
                if self.export_dir is not None:
                    try:
                        artifact.exported_to = self._export(job, path, location)
                    except OSError as e:
                        warnings.append(f"Задача {job.name}: не удалось скопировать артефакт {path}: {e}")
                    else:
                        logs.append(f"Артефакт {path} скопирован в {artifact.exported_to}")

            artifacts.append(artifact)

        return artifacts, logs, warnings
