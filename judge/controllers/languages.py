from fastapi import APIRouter

from judge.languages import supported_languages
from judge.models import LanguageInfo, LanguagesResponse

router = APIRouter(tags=["languages"])


@router.get("/languages", response_model=LanguagesResponse)
async def list_languages() -> LanguagesResponse:
    return LanguagesResponse(
        languages=[
            LanguageInfo(key=d.key, label=d.label, extensions=list(d.extensions))
            for d in supported_languages()
        ]
    )
