import sys

import settings
import click

from utils import async_click
from exception import InvalidSpec
from pipe2run import config
from pipe2run.core import Pipe2RunCore
from pipe2run.services.builders.pipeline import render_plan
from pipe2run.services.git_module import GitExceptions


@click.command()
@click.option("-f", "--file", "pipeline_file", default=config.PIPELINE_FILE, show_default=True,
              help="Файл пайплайна относительно корня проекта")
@click.option("--tag", is_flag=True, help="REF является тегом, а не веткой")
@click.option("-o", "--artifacts-dir", type=click.Path(file_okay=False), default=None,
              help="Куда скопировать артефакты успешных задач")
@click.option("-j", "--jobs", "max_parallel", type=click.IntRange(min=0), default=config.MAX_PARALLEL,
              help="Сколько задач стадии запускать одновременно (0: все)")
@click.option("--shell", default=config.SHELL, show_default=True, help="Shell для команд script")
@click.option("--dry-run", is_flag=True, help="Показать план запуска без выполнения команд")
@click.argument("repository", default=".")
@click.argument("ref", required=False)
@click.pass_context
@async_click
async def main(
    ctx: click.Context,
    repository: str,
    ref: str | None,
    pipeline_file: str,
    tag: bool,
    artifacts_dir: str | None,
    max_parallel: int,
    shell: str,
    dry_run: bool,
):
    """Запускает пайплайн REPOSITORY (каталог или git URL) для ветки REF."""
    click.echo(settings.LOGO + "\n")

    pipe2run = Pipe2RunCore(
        pipeline_file,
        shell=shell,
        max_parallel=max_parallel,
        progress=sys.stdout.isatty(),
    )
    try:
        response = await pipe2run.run_pipeline(
            repository=repository,
            ref=ref,
            is_tag=tag,
            artifacts_dir=artifacts_dir,
            dry_run=dry_run,
        )
    except (InvalidSpec, GitExceptions) as e:
        for line in e.logs:
            click.echo(line, err=True)
        click.echo(f"Ошибка: {e.description}", err=True)
        ctx.exit(settings.EXIT_INVALID)

    for warning in response.warnings:
        click.echo(f"⚠ {warning}", err=True)

    if dry_run:
        click.echo(render_plan(response.plan))
        ctx.exit(settings.EXIT_OK)

    click.echo(response.summary.description)
    for artifact in response.result.artifacts:
        if artifact.exists:
            click.echo(f"Артефакт {artifact.job}: {artifact.exported_to or artifact.location}")

    ctx.exit(settings.EXIT_OK if response.status == "ok" else settings.EXIT_PIPELINE_FAILED)


if __name__ == "__main__":
    main()
