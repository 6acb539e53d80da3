import os
from pathlib import Path
from typing import Mapping, Optional

from exception import InvalidSpec

from . import config
from .animation import run as run_animation
from .models import RunResponse, TriggerContext
from .services.artifacts.core import ArtifactCollector
from .services.builders import pipeline as builder
from .services.executor.core import PipelineExecutor
from .services.git_module import GitWorkspace, GitRefError, LocalRepo
from .services.git_module.utils import is_remote
from .services.parser import core as parser


class Pipe2RunCore:
    """
    Фасад: рабочая копия -> чтение пайплайна -> запуск -> резюме.

    Логи и предупреждения всех шагов собираются в self.logs / self.warnings
    и возвращаются в RunResponse.
    """

    def __init__(
        self,
        pipeline_file: str = config.PIPELINE_FILE,
        *,
        shell: str = config.SHELL,
        max_parallel: int = config.MAX_PARALLEL,
        environ: Optional[Mapping[str, str]] = None,
        progress: bool = False,
        quiet: bool = False,
    ):
        self.git = GitWorkspace(default_branch=config.DEFAULT_CLONE_REF)
        self.pipeline_file = pipeline_file
        self.shell = shell
        self.max_parallel = max_parallel
        self.environ = dict(os.environ if environ is None else environ)
        self.progress = progress
        self.quiet = quiet
        self.logs: list[str] = []
        self.warnings: list[str] = []

    async def _prepare(self, repository: str, ref: Optional[str]) -> LocalRepo:
        if is_remote(repository):
            return await run_animation(
                self.git.clone,
                repository,
                ref,
                text=f"Клонирование репозитория {repository}",
                enabled=self.progress,
            )
        return await self.git.from_existing_path(repository)

    def _resolve_context(self, local: LocalRepo, ref: Optional[str], is_tag: bool) -> TriggerContext:
        # Явный аргумент > CI_COMMIT_REF_NAME > активная ветка репозитория
        resolved = ref or self.environ.get("CI_COMMIT_REF_NAME") or local.ref
        if not resolved:
            raise GitRefError(path=str(local.repo_path), logs=list(self.logs))
        self.logs.append(f"Ref для запуска: {resolved}{' (тег)' if is_tag else ''}")
        return TriggerContext(ref=resolved, is_tag=is_tag)

    async def run_pipeline(
        self,
        repository: str = ".",
        ref: Optional[str] = None,
        *,
        is_tag: bool = False,
        artifacts_dir: Optional[Path] = None,
        dry_run: bool = False,
    ) -> RunResponse:
        """
        Запускает пайплайн проекта repository для ref.

        :raises InvalidSpec: файл пайплайна отсутствует или некорректен.
        :raises GitExceptions: не удалось подготовить рабочую копию или определить ref.
        """
        local: Optional[LocalRepo] = None
        try:
            local = await self._prepare(repository, ref)
            self.logs.extend(local.logs)

            context = self._resolve_context(local, ref, is_tag)

            pipeline_path = local.repo_path / self.pipeline_file
            try:
                pipeline, parse_logs, parse_warnings = parser.load_pipeline(pipeline_path)
            except InvalidSpec as e:
                e.logs = self.logs + e.logs
                raise
            self.logs.extend(parse_logs)
            self.warnings.extend(parse_warnings)

            plan = builder.plan_pipeline(pipeline, context)
            if dry_run:
                self.logs.append("Режим dry-run: команды не выполняются.")
                return RunResponse(
                    status="ok",
                    ref=context.ref,
                    plan=plan,
                    warnings=self.warnings,
                    logs=self.logs,
                )

            collector = ArtifactCollector(local.repo_path, artifacts_dir)
            executor = PipelineExecutor(
                local.repo_path,
                shell=self.shell,
                max_parallel=self.max_parallel,
                collector=collector,
                environ=self.environ,
                progress=self.progress,
                quiet=self.quiet,
            )
            result = await executor.run(pipeline, context)
            self.logs.extend(result.logs)
            self.warnings.extend(result.warnings)

            if local.is_temporary and artifacts_dir is None and result.artifacts:
                self.warnings.append(
                    "Артефакты собраны во временном клоне и будут удалены. "
                    "Укажите --artifacts-dir, чтобы сохранить их."
                )

            summary = builder.summarize_result(result)
        finally:
            if local is not None and local.is_temporary:
                try:
                    local.cleanup()
                    self.logs.append("Временная папка с репозиторием удалена.")
                except OSError as e:
                    self.warnings.append(f"Не удалось удалить временную папку {local.root_dir}: {e}")

        return RunResponse(
            status="ok" if result.succeeded else "failed",
            ref=context.ref,
            plan=plan,
            result=result,
            summary=summary,
            warnings=self.warnings,
            logs=self.logs,
        )
