from pathlib import Path
import os
from tempfile import gettempdir

"""
Настройки pipe2run из переменных окружения.

PIPE2RUN_WORKDIR: базовый каталог для временных клонов (по умолчанию <tmp>/pipe2run);
PIPE2RUN_SHELL: shell, в котором выполняются строки script;
PIPE2RUN_MAX_PARALLEL: сколько задач стадии запускать одновременно (0: без ограничения);
PIPE2RUN_PIPELINE_FILE: имя файла пайплайна в корне проекта.
"""

BASE_TEMP_DIR = Path(
    os.getenv("PIPE2RUN_WORKDIR", gettempdir())
) / "pipe2run"

SHELL = os.getenv("PIPE2RUN_SHELL", "/bin/sh")

MAX_PARALLEL = int(os.getenv("PIPE2RUN_MAX_PARALLEL", "0"))

PIPELINE_FILE = os.getenv("PIPE2RUN_PIPELINE_FILE", ".gitlab-ci.yml")

DEFAULT_CLONE_REF = "master"
