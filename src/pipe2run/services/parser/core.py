from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml
from pydantic import ValidationError

from exception import InvalidSpec
from model import Job, Pipeline


# Ключи верхнего уровня, которые не являются задачами
RESERVED_KEYS = {
    "image",
    "stages",
    "variables",
    "before_script",
    "after_script",
    "cache",
    "services",
    "default",
    "include",
    "workflow",
    "types",
}

# Ключи, которые читаем; остальное (tags, when, cache ...) игнорируем с предупреждением
KNOWN_JOB_KEYS = {
    "stage",
    "image",
    "before_script",
    "script",
    "only",
    "except",
    "artifacts",
    "variables",
}


def _as_commands(value: Any, field: str, job: str, path: Optional[str]) -> List[str]:
    """
    script/before_script: строка или список строк.
    Вложенные списки (YAML-якоря) разворачиваем в один уровень.
    """
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise InvalidSpec(f"job {job!r}: {field} must be a string or a list of strings", path)

    commands: List[str] = []
    for item in value:
        if isinstance(item, list):
            commands.extend(_as_commands(item, field, job, path))
        elif isinstance(item, (str, int, float)) and not isinstance(item, bool):
            commands.append(str(item))
        else:
            raise InvalidSpec(f"job {job!r}: {field} contains a non-string entry {item!r}", path)
    return commands


def _as_variables(value: Any, where: str, path: Optional[str]) -> Dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidSpec(f"{where}: variables must be a mapping", path)

    variables: Dict[str, str] = {}
    for key, raw in value.items():
        # Расширенная форма GitLab: {value: ..., description: ...}
        if isinstance(raw, Mapping):
            raw = raw.get("value", "")
        variables[str(key)] = "" if raw is None else str(raw)
    return variables


def _as_condition(
    value: Any,
    field: str,
    job: str,
    path: Optional[str],
    warnings: List[str],
) -> Dict[str, List[str]]:
    if isinstance(value, str):
        refs = [value]
    elif isinstance(value, list):
        refs = value
    elif isinstance(value, Mapping) and "refs" in value:
        refs = value["refs"]
        if isinstance(refs, str):
            refs = [refs]
        ignored = sorted(set(value) - {"refs"})
        if ignored:
            # variables, changes и kubernetes не проверяются, остаётся только фильтр по ref
            warnings.append(
                f"Задача {job}: условия {field}: {', '.join(map(str, ignored))} не поддерживаются и будут проигнорированы."
            )
    else:
        raise InvalidSpec(f"job {job!r}: {field} must be a list of refs or a mapping with 'refs'", path)

    if not isinstance(refs, list) or not all(isinstance(ref, str) for ref in refs):
        raise InvalidSpec(f"job {job!r}: {field} refs must be strings", path)

    for ref in refs:
        if len(ref) > 1 and ref.startswith("/") and ref.endswith("/"):
            try:
                re.compile(ref[1:-1])
            except re.error as e:
                raise InvalidSpec(f"job {job!r}: bad regular expression {ref}: {e}", path)

    return {"refs": refs}


def _as_artifacts(value: Any, job: str, path: Optional[str]) -> Dict[str, List[str]]:
    if isinstance(value, Mapping):
        paths = value.get("paths", [])
    else:
        raise InvalidSpec(f"job {job!r}: artifacts must be a mapping with 'paths'", path)

    if isinstance(paths, str):
        paths = [paths]
    if not isinstance(paths, list) or not all(isinstance(p, str) for p in paths):
        raise InvalidSpec(f"job {job!r}: artifacts.paths must be a list of strings", path)
    return {"paths": paths}


def _build_job(
    name: str,
    raw: Any,
    path: Optional[str],
    warnings: List[str],
) -> Job:
    if not isinstance(raw, Mapping):
        raise InvalidSpec(f"job {name!r} must be a mapping", path)
    if "script" not in raw or raw["script"] in (None, [], ""):
        raise InvalidSpec(f"job {name!r}: script is required", path)

    unknown = sorted(set(raw) - KNOWN_JOB_KEYS)
    if unknown:
        warnings.append(
            f"Задача {name}: ключи {', '.join(map(str, unknown))} не поддерживаются и будут проигнорированы."
        )

    data: Dict[str, Any] = {
        "name": name,
        "script": _as_commands(raw["script"], "script", name, path),
    }
    if "stage" in raw:
        if not isinstance(raw["stage"], str):
            raise InvalidSpec(f"job {name!r}: stage must be a string", path)
        data["stage"] = raw["stage"]
    if raw.get("image") is not None:
        data["image"] = str(raw["image"])
    if "before_script" in raw:
        data["before_script"] = _as_commands(raw["before_script"] or [], "before_script", name, path)
    if raw.get("only") is not None:
        data["only"] = _as_condition(raw["only"], "only", name, path, warnings)
    if raw.get("except") is not None:
        data["except"] = _as_condition(raw["except"], "except", name, path, warnings)
    if raw.get("artifacts") is not None:
        data["artifacts"] = _as_artifacts(raw["artifacts"], name, path)
    data["variables"] = _as_variables(raw.get("variables"), f"job {name!r}", path)

    try:
        return Job.model_validate(data)
    except ValidationError as e:
        raise InvalidSpec(f"job {name!r}: {e}", path)


def _parse_stages(raw: Any, path: Optional[str]) -> Optional[List[str]]:
    if raw is None:
        return None
    if not isinstance(raw, list) or not all(isinstance(s, str) for s in raw):
        raise InvalidSpec("stages must be a list of names", path)

    duplicates = sorted({s for s in raw if raw.count(s) > 1})
    if duplicates:
        raise InvalidSpec(f"duplicate stages: {', '.join(duplicates)}", path)
    return list(raw)


def validate_pipeline(pipeline: Pipeline, path: Optional[str] = None) -> None:
    """
    Проверяет, что каждая задача ссылается на объявленную стадию.
    """
    declared = set(pipeline.stages)
    for job in pipeline.jobs:
        if job.stage not in declared:
            raise InvalidSpec(
                f"job {job.name!r} references unknown stage {job.stage!r} "
                f"(declared: {', '.join(pipeline.stages) or 'none'})",
                path,
            )


def parse_pipeline(
    data: Any,
    path: Optional[str] = None,
) -> Tuple[Pipeline, List[str], List[str]]:
    """
    Превращает разобранный YAML-документ в Pipeline.

    Возвращает (Pipeline, logs, warnings).
    :raises InvalidSpec: документ не является корректным описанием пайплайна.
    """
    logs: List[str] = []
    warnings: List[str] = []

    if not isinstance(data, Mapping):
        raise InvalidSpec("top level must be a mapping", path)

    stages = _parse_stages(data.get("stages", data.get("types")), path)
    if stages is None:
        logs.append("Ключ stages не задан, используем стадии по умолчанию: build, test, deploy.")

    jobs: List[Job] = []
    for name, raw in data.items():
        if not isinstance(name, str):
            raise InvalidSpec(f"job names must be strings, got {name!r}", path)
        if name in RESERVED_KEYS:
            continue
        if name.startswith("."):
            logs.append(f"Скрытая задача {name} пропущена.")
            continue
        jobs.append(_build_job(name, raw, path, warnings))

    if not jobs:
        raise InvalidSpec("pipeline must contain at least one visible job", path)

    for key in ("after_script", "cache", "services", "include", "workflow"):
        if key in data:
            warnings.append(f"Глобальный ключ {key} не поддерживается и будет проигнорирован.")

    fields: Dict[str, Any] = {
        "jobs": jobs,
        "variables": _as_variables(data.get("variables"), "pipeline", path),
    }
    if stages is not None:
        fields["stages"] = stages
    if data.get("image") is not None:
        fields["image"] = str(data["image"])
    if "before_script" in data:
        fields["before_script"] = _as_commands(data["before_script"] or [], "before_script", "<global>", path)

    try:
        pipeline = Pipeline(**fields)
    except ValidationError as e:
        raise InvalidSpec(str(e), path)

    validate_pipeline(pipeline, path)

    logs.append(
        f"Пайплайн прочитан: {len(pipeline.stages)} стадий и {len(pipeline.jobs)} задач."
    )
    return pipeline, logs, warnings


def load_pipeline(path: Path) -> Tuple[Pipeline, List[str], List[str]]:
    """
    Читает файл пайплайна (YAML) с диска.

    :raises InvalidSpec: файл не найден, не читается или содержит некорректный YAML.
    """
    path = Path(path)
    if not path.is_file():
        raise InvalidSpec("pipeline file not found", str(path))

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise InvalidSpec(f"YAML syntax error: {e}", str(path))
    except OSError as e:
        raise InvalidSpec(f"cannot read file: {e}", str(path))

    pipeline, logs, warnings = parse_pipeline(data, str(path))
    logs.insert(0, f"Читаем пайплайн из {path}")
    return pipeline, logs, warnings
