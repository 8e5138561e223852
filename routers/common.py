from typing import Optional, Tuple

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile

from errors import ValidationError
from uploads import has_file


def parse_payload(model, data: dict):
    """Validate a raw dict against a schema; failures surface as a 400."""
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc


def form_values(form) -> dict:
    """Plain string fields of a submitted form; blank ones are dropped."""
    values = {}
    for key, value in form.items():
        if isinstance(value, str) and value.strip():
            values[key] = value.strip()
    return values


def is_json(request: Request) -> bool:
    return request.headers.get("content-type", "").startswith("application/json")


async def read_payload(request: Request) -> dict:
    if not is_json(request):
        return form_values(await request.form())
    try:
        data = await request.json()
    except ValueError as exc:
        raise ValidationError("Malformed JSON body") from exc
    if not isinstance(data, dict):
        raise ValidationError()
    return data


async def read_submission(
    request: Request, file_field: str = "photo"
) -> Tuple[dict, Optional[UploadFile]]:
    """
    Fields plus the optional image of a create request.
    Multipart carries both; a JSON body carries fields only.
    """
    if is_json(request):
        return await read_payload(request), None

    form = await request.form()
    upload = form.get(file_field)
    return form_values(form), upload if has_file(upload) else None
