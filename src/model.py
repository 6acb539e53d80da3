from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional


DEFAULT_STAGES = ["build", "test", "deploy"]
DEFAULT_JOB_STAGE = "test"


class RefCondition(BaseModel):
    """
    Условие запуска по ref (only / except).

    Каждый элемент refs может быть:
      - имя ветки/тега ("master");
      - регулярное выражение в слешах ("/^release-.*$/");
      - ключевое слово "branches" (любая ветка) или "tags" (любой тег).
    """

    model_config = ConfigDict(frozen=True)

    refs: List[str] = Field(default_factory=list)


class ArtifactSpec(BaseModel):
    """Пути (относительно корня проекта), которые сохраняются после успешной задачи."""

    model_config = ConfigDict(frozen=True)

    paths: List[str] = Field(default_factory=list)


class Job(BaseModel):
    """
    Задача пайплайна.
    На этом уровне не привязана к GitLab: только стадия, команды и условие запуска.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    stage: str = DEFAULT_JOB_STAGE
    image: Optional[str] = None  # только для отчёта, контейнеры не запускаем
    before_script: Optional[List[str]] = None
    script: List[str] = Field(min_length=1)

    only: Optional[RefCondition] = None
    except_: Optional[RefCondition] = Field(default=None, alias="except")
    artifacts: Optional[ArtifactSpec] = None
    variables: Dict[str, str] = Field(default_factory=dict)

    @property
    def artifact_paths(self) -> List[str]:
        return list(self.artifacts.paths) if self.artifacts else []


class Pipeline(BaseModel):
    """
    Пайплайн: порядок стадий + набор задач.
    """

    model_config = ConfigDict(frozen=True)

    stages: List[str] = Field(default_factory=lambda: list(DEFAULT_STAGES))
    jobs: List[Job]

    image: Optional[str] = None
    variables: Dict[str, str] = Field(default_factory=dict)
    before_script: Optional[List[str]] = None

    def jobs_in_stage(self, stage: str) -> List[Job]:
        return [job for job in self.jobs if job.stage == stage]

    def setup_commands(self, job: Job) -> List[str]:
        # before_script задачи полностью заменяет глобальный, как в GitLab
        if job.before_script is not None:
            return list(job.before_script)
        return list(self.before_script or [])
