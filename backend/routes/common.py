from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts camelCase or snake_case input and serialises as camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def envelope(data: Any = None, message: str | None = None, **extra: Any) -> dict:
    body: dict[str, Any] = {'success': True}
    if message is not None:
        body['message'] = message
    if data is not None:
        body['data'] = _dump(data)
    body.update({key: _dump(value) for key, value in extra.items()})
    return body


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode='json')
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value
