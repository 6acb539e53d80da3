import os
from pathlib import Path

import pytest
from click.testing import CliRunner

from cli import main
from exception import InvalidSpec
from pipe2run.core import Pipe2RunCore
from pipe2run.services.git_module import GitRefError


@pytest.fixture
def runner(monkeypatch) -> CliRunner:
    monkeypatch.delenv("CI_COMMIT_REF_NAME", raising=False)
    return CliRunner()


def test_feature_branch_run(runner: CliRunner, reference_project: Path) -> None:
    result = runner.invoke(main, [str(reference_project), "feature-x"])

    assert result.exit_code == 0, result.output
    assert "[test:nightly] ✅ Успешно" in result.output
    assert "[pages] пропущена" in result.output
    assert "Пайплайн для feature-x выполнен успешно" in result.output
    assert not (reference_project / "public").exists()


def test_master_run_exports_artifacts(runner: CliRunner, reference_project: Path, tmp_path_factory) -> None:
    export = tmp_path_factory.mktemp("export")

    result = runner.invoke(main, [str(reference_project), "master", "-o", str(export)])

    assert result.exit_code == 0, result.output
    assert (export / "pages" / "public" / "index.html").exists()
    assert "Артефакт pages" in result.output


def test_failing_pipeline_exit_code(runner: CliRunner, write_pipeline, tmp_path: Path) -> None:
    write_pipeline(
        "stages: [test, deploy_docs]\n"
        "unit:\n  stage: test\n  script: ['exit 4']\n"
        "pages:\n  stage: deploy_docs\n  script: ['mkdir public']\n  only: [master]\n"
    )

    result = runner.invoke(main, [str(tmp_path), "master"])

    assert result.exit_code == 1
    assert "Stage test failed: unit" in result.output
    assert not (tmp_path / "public").exists()


def test_invalid_pipeline_exit_code(runner: CliRunner, write_pipeline, tmp_path: Path) -> None:
    write_pipeline("stages: [test]\nlint:\n  stage: lint\n  script: ['touch ran']\n")

    result = runner.invoke(main, [str(tmp_path), "master"])

    assert result.exit_code == 2
    assert "unknown stage 'lint'" in result.output
    assert not (tmp_path / "ran").exists()


def test_dry_run_executes_nothing(runner: CliRunner, reference_project: Path) -> None:
    result = runner.invoke(main, [str(reference_project), "master", "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "+ pages" in result.output
    assert not (reference_project / "tests.log").exists()


def test_custom_pipeline_file(runner: CliRunner, write_pipeline, tmp_path: Path) -> None:
    write_pipeline("unit:\n  script: ['touch custom']\n", name="ci.yml")

    result = runner.invoke(main, [str(tmp_path), "main", "--file", "ci.yml"])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "custom").exists()


def test_missing_ref_in_plain_directory(runner: CliRunner, reference_project: Path) -> None:
    result = runner.invoke(main, [str(reference_project)])

    assert result.exit_code == 2
    assert "CI_COMMIT_REF_NAME" in result.output


def test_tag_flag(runner: CliRunner, write_pipeline, tmp_path: Path) -> None:
    write_pipeline(
        "release:\n  script: ['test \"$CI_COMMIT_TAG\" = v1.0', 'touch released']\n  only: [tags]\n"
    )

    result = runner.invoke(main, [str(tmp_path), "v1.0", "--tag"])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "released").exists()


@pytest.mark.asyncio
async def test_core_uses_ref_from_environment(reference_project: Path) -> None:
    core = Pipe2RunCore(environ={"PATH": os.environ["PATH"], "CI_COMMIT_REF_NAME": "master"}, quiet=True)

    response = await core.run_pipeline(str(reference_project))

    assert response.status == "ok"
    assert response.ref == "master"
    assert response.summary.succeeded[-1] == "pages"
    assert any("Ref для запуска: master" in line for line in response.logs)


@pytest.mark.asyncio
async def test_core_reports_failed_status(write_pipeline, tmp_path: Path, capsys) -> None:
    write_pipeline("unit:\n  script: ['false']\n")
    core = Pipe2RunCore(environ={"PATH": os.environ["PATH"]}, quiet=True)

    response = await core.run_pipeline(str(tmp_path), "master")

    assert response.status == "failed"
    assert response.summary.failed == ["unit"]
    assert capsys.readouterr().out == ""


@pytest.mark.asyncio
async def test_core_errors(tmp_path: Path) -> None:
    core = Pipe2RunCore(environ={"PATH": os.environ["PATH"]}, quiet=True)

    with pytest.raises(GitRefError):
        await core.run_pipeline(str(tmp_path))

    with pytest.raises(InvalidSpec) as excinfo:
        await core.run_pipeline(str(tmp_path), "master")
    assert any("Используем существующий путь" in line for line in excinfo.value.logs)
