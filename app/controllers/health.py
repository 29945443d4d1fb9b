from fastapi import APIRouter

from app.config import NAME, VERSION
from app.responses.json_response import JSONResponse

router = APIRouter(default_response_class=JSONResponse)


@router.get('/health')
async def health() -> dict:
    return {'status': 'ok', 'name': NAME, 'version': VERSION}
