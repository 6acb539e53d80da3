from typing import List

from model import Pipeline
from pipe2run.conditions import evaluate
from pipe2run.models import (
    JobState,
    PipelinePlan,
    PipelineResult,
    RunSummary,
    StagePlan,
    TriggerContext,
)
from utils import format_duration


def plan_pipeline(pipeline: Pipeline, context: TriggerContext) -> PipelinePlan:
    """
    Строит план запуска без выполнения команд: какие задачи пойдут
    в каждой стадии, а какие будут пропущены и почему.
    """
    stages: List[StagePlan] = []
    for stage in pipeline.stages:
        stage_plan = StagePlan(name=stage)
        for job in pipeline.jobs_in_stage(stage):
            run, reason = evaluate(job, context)
            if run:
                stage_plan.run.append(job.name)
            else:
                stage_plan.skip[job.name] = reason
        stages.append(stage_plan)

    return PipelinePlan(ref=context.ref, stages=stages)


def render_plan(plan: PipelinePlan) -> str:
    lines = [f"План пайплайна для ref {plan.ref}:"]
    for stage in plan.stages:
        lines.append(f"  {stage.name}:")
        if not stage.run and not stage.skip:
            lines.append("    (нет задач)")
        for name in stage.run:
            lines.append(f"    + {name}")
        for name, reason in stage.skip.items():
            lines.append(f"    - {name} ({reason})")
    return "\n".join(lines)


def summarize_result(result: PipelineResult) -> RunSummary:
    """
    Строит краткое резюме запуска для CLI.
    """
    by_state = {state: [] for state in JobState}
    for job in result.jobs.values():
        by_state[job.state].append(job.name)

    artifacts = [f"{a.job}:{a.path}" for a in result.artifacts if a.exists]
    stages_count = len(result.stages)
    jobs_count = len(result.jobs)
    duration = sum(record.duration for record in result.command_log)

    if result.succeeded:
        description = (
            f"Пайплайн для {result.ref} выполнен успешно: {stages_count} стадий, "
            f"{len(by_state[JobState.succeeded])} задач выполнено, "
            f"{len(by_state[JobState.skipped])} пропущено ({format_duration(duration)})."
        )
    else:
        description = (
            f"Пайплайн для {result.ref} упал: {result.error.description}. "
            f"Не запускались: {', '.join(by_state[JobState.pending]) or '-'}."
        )

    return RunSummary(
        stages_count=stages_count,
        jobs_count=jobs_count,
        succeeded=by_state[JobState.succeeded],
        failed=by_state[JobState.failed],
        skipped=by_state[JobState.skipped],
        not_started=by_state[JobState.pending],
        artifacts=artifacts,
        description=description,
    )
