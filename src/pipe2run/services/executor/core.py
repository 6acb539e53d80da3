import asyncio
import os
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Dict, List, Mapping, Optional

import click

from exception import JobFailed, StageFailed
from model import Job, Pipeline
from pipe2run import config
from pipe2run.animation import run as run_animation
from pipe2run.conditions import evaluate
from pipe2run.models import (
    CommandRecord,
    JobResult,
    JobState,
    PipelineResult,
    StageResult,
    StageState,
    TriggerContext,
)
from pipe2run.services.artifacts.core import ArtifactCollector
from pipe2run.services.parser.core import validate_pipeline
from utils import prefix_lines

from .shell import run_command


class PipelineExecutor:
    """
    Исполнитель пайплайна.

    - стадии идут строго по порядку и являются барьерами;
    - задачи внутри стадии запускаются параллельно (asyncio.gather);
    - задача: before_script, затем script; первая команда с ненулевым кодом
      прерывает задачу (JobFailed);
    - упавшая стадия останавливает пайплайн (StageFailed), соседние задачи
      этой стадии дорабатывают сами.
    """

    def __init__(
        self,
        project_dir: Path,
        *,
        shell: str = config.SHELL,
        max_parallel: int = config.MAX_PARALLEL,
        collector: Optional[ArtifactCollector] = None,
        environ: Optional[Mapping[str, str]] = None,
        progress: bool = False,
        quiet: bool = False,
    ) -> None:
        self.project_dir = Path(project_dir)
        self.shell = shell
        self.max_parallel = max_parallel
        self.collector = collector or ArtifactCollector(self.project_dir)
        self.environ = dict(os.environ if environ is None else environ)
        self.progress = progress
        self.quiet = quiet

    def _echo(self, message: str, err: bool = False) -> None:
        if not self.quiet:
            click.echo(message, err=err)

    def _job_env(self, pipeline: Pipeline, job: Job, context: TriggerContext) -> Dict[str, str]:
        env = dict(self.environ)
        env.update(pipeline.variables)
        env.update(job.variables)
        env.update(
            {
                "CI": "true",
                "CI_COMMIT_REF_NAME": context.ref,
                "CI_JOB_NAME": job.name,
                "CI_JOB_STAGE": job.stage,
                "CI_PROJECT_DIR": str(self.project_dir),
                "CI_PIPELINE_SOURCE": context.source,
            }
        )
        if context.is_tag:
            env["CI_COMMIT_TAG"] = context.ref
        else:
            env["CI_COMMIT_BRANCH"] = context.ref
        return env

    async def _execute(
        self,
        job: Job,
        phase: str,
        command: str,
        env: Dict[str, str],
        job_result: JobResult,
        result: PipelineResult,
    ) -> None:
        try:
            exit_code, output, duration = await run_command(
                command, self.project_dir, env, shell=self.shell
            )
        except OSError as e:
            # shell не найден, нет каталога проекта и т.п.
            exit_code, output, duration = -1, f"{e}\n", 0.0

        record = CommandRecord(
            job=job.name,
            stage=job.stage,
            phase=phase,
            command=command,
            exit_code=exit_code,
            output=output,
            duration=duration,
        )
        job_result.commands.append(record)
        result.command_log.append(record)

        if exit_code != 0:
            raise JobFailed(job.name, command, exit_code)

    async def _run_job(
        self,
        job: Job,
        pipeline: Pipeline,
        context: TriggerContext,
        job_result: JobResult,
        result: PipelineResult,
        semaphore: Optional[asyncio.Semaphore],
    ) -> JobResult:
        async with AsyncExitStack() as stack:
            if semaphore is not None:
                await stack.enter_async_context(semaphore)

            job_result.state = JobState.running
            env = self._job_env(pipeline, job, context)
            result.logs.append(f"Задача {job.name} запущена (стадия {job.stage}).")

            try:
                for command in pipeline.setup_commands(job):
                    await self._execute(job, "before_script", command, env, job_result, result)
                for command in job.script:
                    await self._execute(job, "script", command, env, job_result, result)
            except JobFailed as e:
                job_result.state = JobState.failed
                job_result.failure = e
                result.logs.append(e.description)
                return job_result

            # Артефакты собираем только у успешных задач
            artifacts, logs, warnings = await asyncio.to_thread(self.collector.collect, job)
            job_result.artifacts = artifacts
            result.logs.extend(logs)
            result.warnings.extend(warnings)

            job_result.state = JobState.succeeded
            result.logs.append(f"Задача {job.name} завершилась успешно.")
            return job_result

    def _report_job(self, job_result: JobResult) -> None:
        if job_result.state == JobState.skipped:
            self._echo(f"[{job_result.name}] пропущена: {job_result.skip_reason}")
            return

        for record in job_result.commands:
            self._echo(f"[{job_result.name}] $ {record.command}")
            if record.output:
                self._echo(prefix_lines(record.output, f"[{job_result.name}] "))

        if job_result.state == JobState.succeeded:
            self._echo(f"[{job_result.name}] ✅ Успешно")
        else:
            failure = job_result.failure
            self._echo(
                f"[{job_result.name}] ❌ Ошибка: код выхода {failure.exit_code}",
                err=True,
            )

    async def _run_stage(
        self,
        stage: str,
        pipeline: Pipeline,
        context: TriggerContext,
        result: PipelineResult,
    ) -> StageResult:
        stage_result = StageResult(name=stage, state=StageState.succeeded)
        selected: List[Job] = []

        for job in pipeline.jobs_in_stage(stage):
            job_result = JobResult(name=job.name, stage=stage)
            stage_result.jobs.append(job_result)

            run, reason = evaluate(job, context)
            if run:
                selected.append(job)
            else:
                job_result.state = JobState.skipped
                job_result.skip_reason = reason
                result.logs.append(f"Задача {job.name} пропущена: {reason}")

        if not selected:
            # Все задачи пропущены, стадия считается успешной
            result.logs.append(f"Стадия {stage}: нет задач для запуска.")
            return stage_result

        semaphore = asyncio.Semaphore(self.max_parallel) if self.max_parallel > 0 else None
        by_name = {job_result.name: job_result for job_result in stage_result.jobs}

        await asyncio.gather(
            *(
                self._run_job(job, pipeline, context, by_name[job.name], result, semaphore)
                for job in selected
            )
        )

        failures = [
            job_result.failure
            for job_result in stage_result.jobs
            if job_result.state == JobState.failed
        ]
        if failures:
            stage_result.state = StageState.failed
            result.error = StageFailed(stage, failures)
        return stage_result

    async def run(self, pipeline: Pipeline, context: TriggerContext) -> PipelineResult:
        """
        Запускает пайплайн для trigger-контекста.

        :raises InvalidSpec: задача ссылается на необъявленную стадию,
                             в этом случае не запускается ни одна команда.
        """
        validate_pipeline(pipeline)

        result = PipelineResult(ref=context.ref)
        result.logs.append(
            f"Запуск пайплайна для ref {context.ref}: стадии {', '.join(pipeline.stages)}"
        )
        if pipeline.image:
            result.logs.append(f"Образ {pipeline.image} не запускается, команды выполняются локально.")

        for index, stage in enumerate(pipeline.stages):
            self._echo(f"=== Стадия {stage} ===")
            stage_result = await run_animation(
                self._run_stage,
                stage,
                pipeline,
                context,
                result,
                text=f"Стадия {stage}",
                enabled=self.progress,
            )
            result.stages.append(stage_result)

            for job_result in stage_result.jobs:
                self._report_job(job_result)

            if stage_result.state == StageState.failed:
                self._echo(result.error.description, err=True)
                result.logs.append(f"{result.error.description}. Следующие стадии не запускаются.")
                for rest in pipeline.stages[index + 1:]:
                    result.stages.append(
                        StageResult(
                            name=rest,
                            state=StageState.skipped,
                            jobs=[
                                JobResult(name=job.name, stage=rest)
                                for job in pipeline.jobs_in_stage(rest)
                            ],
                        )
                    )
                break

        if result.succeeded:
            result.logs.append("Пайплайн завершился успешно.")
        return result
