from typing import Any, Dict

from fastapi import Request
from helpers import parse_id


async def form_fields(request: Request) -> Dict[str, Any]:
    """Raw form body: a repeated field becomes a list, a single one a string."""
    form = await request.form()
    fields: Dict[str, Any] = {}
    for key in form.keys():
        values = [v for v in form.getlist(key) if isinstance(v, str)]
        if not values:
            continue
        fields[key] = values[0] if len(values) == 1 else values
    return fields


def path_id(id: str) -> int | None:
    """Entity id from the path; anything unparseable addresses nothing."""
    return parse_id(id)
