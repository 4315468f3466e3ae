"""Section API routes"""

from fastapi import APIRouter
from . import auto, info

router = APIRouter()

# Info first: /section/info/{handle} would otherwise match /section/{handle}/{field_handle}
router.include_router(info.router, tags=["Section Info"])
router.include_router(auto.router, tags=["Section Entries"])
