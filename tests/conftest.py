from pathlib import Path
from typing import Callable

import pytest
import yaml

from pipe2run.services.parser.core import parse_pipeline


# Тот же пайплайн, что и у rust-проекта: три тестовые задачи и публикация
# документации из master. Вместо rustup/cargo — безопасные shell-команды.
REFERENCE_PIPELINE = """
image: "rust:latest"

stages:
- test
- deploy_docs

test:stable:
  before_script:
  - echo "toolchain stable" >> toolchains.log
  script:
  - echo "stable" >> tests.log
  stage: test
test:beta:
  before_script:
  - echo "toolchain beta" >> toolchains.log
  script:
  - echo "beta" >> tests.log
  stage: test
test:nightly:
  before_script:
  - echo "toolchain nightly" >> toolchains.log
  script:
  - echo "nightly" >> tests.log
  stage: test

pages:
  script:
  - mkdir -p target/doc && echo "<html></html>" > target/doc/index.html
  - mkdir public
  - mv target/doc/* public
  stage: deploy_docs
  artifacts:
    paths:
    - public/
  only:
  - master
"""


@pytest.fixture
def write_pipeline(tmp_path: Path) -> Callable[[str], Path]:
    def _write(text: str, name: str = ".gitlab-ci.yml") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def reference_project(tmp_path: Path, write_pipeline) -> Path:
    write_pipeline(REFERENCE_PIPELINE)
    return tmp_path


@pytest.fixture
def reference_pipeline():
    pipeline, _, _ = parse_pipeline(yaml.safe_load(REFERENCE_PIPELINE))
    return pipeline
