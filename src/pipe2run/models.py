from enum import Enum
from pathlib import Path
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from exception import JobFailed, StageFailed


class JobState(str, Enum):
    pending = "pending"
    skipped = "skipped"
    running = "running"
    succeeded = "succeeded"
    failed = "failed"


TERMINAL_JOB_STATES = {JobState.skipped, JobState.succeeded, JobState.failed}


class StageState(str, Enum):
    succeeded = "succeeded"
    failed = "failed"
    skipped = "skipped"  # стадия не была достигнута


class TriggerContext(BaseModel):
    """
    Событие, запустившее пайплайн.
    ref: имя ветки или тега;
    is_tag: True, если ref является тегом.
    """

    model_config = ConfigDict(frozen=True)

    ref: str
    is_tag: bool = False
    source: str = "push"


class Artifact(BaseModel):
    job: str
    path: str
    location: Path
    exists: bool
    exported_to: Optional[Path] = None


class CommandRecord(BaseModel):
    job: str
    stage: str
    phase: Literal["before_script", "script"]
    command: str
    exit_code: int
    output: str = ""
    duration: float = 0.0


class JobResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    name: str
    stage: str
    state: JobState = JobState.pending
    commands: List[CommandRecord] = Field(default_factory=list)
    artifacts: List[Artifact] = Field(default_factory=list)
    failure: Optional[JobFailed] = None
    skip_reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_JOB_STATES


class StageResult(BaseModel):
    name: str
    state: StageState
    jobs: List[JobResult] = Field(default_factory=list)


class PipelineResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    ref: str
    stages: List[StageResult] = Field(default_factory=list)
    command_log: List[CommandRecord] = Field(default_factory=list)
    logs: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    error: Optional[StageFailed] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and all(
            stage.state != StageState.failed for stage in self.stages
        )

    @property
    def jobs(self) -> Dict[str, JobResult]:
        return {job.name: job for stage in self.stages for job in stage.jobs}

    @property
    def artifacts(self) -> List[Artifact]:
        return [a for job in self.jobs.values() for a in job.artifacts]

    def raise_for_status(self) -> None:
        if self.error is not None:
            raise self.error


class StagePlan(BaseModel):
    name: str
    run: List[str] = Field(default_factory=list)
    skip: Dict[str, str] = Field(default_factory=dict)  # job -> причина


class PipelinePlan(BaseModel):
    ref: str
    stages: List[StagePlan] = Field(default_factory=list)


class RunSummary(BaseModel):
    stages_count: int
    jobs_count: int
    succeeded: List[str]
    failed: List[str]
    skipped: List[str]
    not_started: List[str]
    artifacts: List[str]
    # Короткое текстовое описание для CLI
    description: str


class RunResponse(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    status: Literal["ok", "failed", "error"]
    ref: Optional[str] = None
    plan: Optional[PipelinePlan] = None
    result: Optional[PipelineResult] = None
    summary: Optional[RunSummary] = None
    warnings: List[str] = []
    logs: List[str] = []
