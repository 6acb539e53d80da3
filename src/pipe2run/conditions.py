import re
from typing import Optional, Tuple

from model import Job, RefCondition
from pipe2run.models import TriggerContext


def _matches(pattern: str, context: TriggerContext) -> bool:
    if pattern == "branches":
        return not context.is_tag
    if pattern == "tags":
        return context.is_tag

    # /regex/: регулярное выражение в стиле GitLab
    if len(pattern) > 1 and pattern.startswith("/") and pattern.endswith("/"):
        return re.search(pattern[1:-1], context.ref) is not None

    return pattern == context.ref


def condition_matches(condition: RefCondition, context: TriggerContext) -> bool:
    return any(_matches(pattern, context) for pattern in condition.refs)


def evaluate(job: Job, context: TriggerContext) -> Tuple[bool, Optional[str]]:
    """
    Проверяет условие запуска задачи для данного ref.

    Возвращает (run, reason): reason заполнен только когда задача пропускается.
    Функция чистая: ничего не запускает и не пишет в логи.
    """
    if job.only is not None and not condition_matches(job.only, context):
        return False, f"ref {context.ref!r} not in only: {', '.join(job.only.refs)}"

    if job.except_ is not None and condition_matches(job.except_, context):
        return False, f"ref {context.ref!r} matches except: {', '.join(job.except_.refs)}"

    return True, None
