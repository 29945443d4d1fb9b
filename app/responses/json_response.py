from typing import Any, override

import orjson
from fastapi import Response


class JSONResponse(Response):
    media_type = 'application/json; charset=utf-8'

    @override
    def render(self, content: Any) -> bytes:
        return orjson.dumps(
            content,
            option=orjson.OPT_SERIALIZE_NUMPY | orjson.OPT_UTC_Z,
        )


class GeoJSONResponse(JSONResponse):
    media_type = 'application/geo+json; charset=utf-8'
