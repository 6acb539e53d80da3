import os
from pathlib import Path

import pytest

from model import Pipeline
from pipe2run.models import TriggerContext
from pipe2run.services.builders.pipeline import plan_pipeline, render_plan, summarize_result
from pipe2run.services.executor.core import PipelineExecutor
from pipe2run.services.parser.core import load_pipeline


def test_plan_for_feature_branch(reference_pipeline: Pipeline) -> None:
    plan = plan_pipeline(reference_pipeline, TriggerContext(ref="feature-x"))

    assert plan.ref == "feature-x"
    assert [stage.name for stage in plan.stages] == ["test", "deploy_docs"]
    assert plan.stages[0].run == ["test:stable", "test:beta", "test:nightly"]
    assert plan.stages[0].skip == {}
    assert plan.stages[1].run == []
    assert list(plan.stages[1].skip) == ["pages"]


def test_plan_for_master(reference_pipeline: Pipeline) -> None:
    plan = plan_pipeline(reference_pipeline, TriggerContext(ref="master"))

    assert plan.stages[1].run == ["pages"]


def test_render_plan(reference_pipeline: Pipeline) -> None:
    text = render_plan(plan_pipeline(reference_pipeline, TriggerContext(ref="feature-x")))

    assert "feature-x" in text
    assert "    + test:beta" in text
    assert "    - pages (" in text


@pytest.mark.asyncio
async def test_summarize_success(tmp_path: Path, reference_pipeline: Pipeline, capsys) -> None:
    executor = PipelineExecutor(tmp_path, environ={"PATH": os.environ["PATH"]}, quiet=True)
    result = await executor.run(reference_pipeline, TriggerContext(ref="master"))

    summary = summarize_result(result)

    assert summary.stages_count == 2
    assert summary.jobs_count == 4
    assert summary.succeeded == ["test:stable", "test:beta", "test:nightly", "pages"]
    assert summary.failed == summary.skipped == summary.not_started == []
    assert summary.artifacts == ["pages:public/"]
    assert "успешно" in summary.description
    assert capsys.readouterr().out == ""


@pytest.mark.asyncio
async def test_summarize_failure(tmp_path: Path, write_pipeline) -> None:
    pipeline, _, _ = load_pipeline(
        write_pipeline(
            "stages: [test, deploy]\n"
            "unit:\n  stage: test\n  script: [exit 2]\n"
            "ship:\n  stage: deploy\n  script: ['true']\n"
        )
    )
    executor = PipelineExecutor(tmp_path, environ={"PATH": os.environ["PATH"]}, quiet=True)
    result = await executor.run(pipeline, TriggerContext(ref="master"))

    summary = summarize_result(result)

    assert summary.failed == ["unit"]
    assert summary.not_started == ["ship"]
    assert "unit" in summary.description and "ship" in summary.description
