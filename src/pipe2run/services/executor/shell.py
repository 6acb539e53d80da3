import asyncio
import time
from pathlib import Path
from typing import Dict, Tuple

from pipe2run import config


async def run_command(
    command: str,
    cwd: Path,
    env: Dict[str, str],
    shell: str = config.SHELL,
) -> Tuple[int, str, float]:
    """
    Выполняет одну строку script в shell и ждёт завершения процесса.

    stdout и stderr объединяются. Возвращает (exit_code, output, duration).
    """
    start = time.monotonic()
    process = await asyncio.create_subprocess_shell(
        command,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
        cwd=str(cwd),
        env=env,
        executable=shell,
    )
    stdout, _ = await process.communicate()
    duration = time.monotonic() - start

    exit_code = process.returncode if process.returncode is not None else -1
    return exit_code, stdout.decode("utf-8", errors="replace"), duration
