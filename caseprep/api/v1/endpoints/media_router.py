# Fichier: caseprep/api/v1/endpoints/media_router.py
"""Images du tableau blanc et transcription audio."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from openai import OpenAI
from pydantic import BaseModel, Field

from caseprep.api.v1.dependencies import get_current_user, get_openai_client
from caseprep.core.config import settings
from caseprep.core.llm_backends import UpstreamUnavailable
from caseprep.models.user.user_model import User
from caseprep.services import storage
from caseprep.services.transcription_service import transcribe_audio

router = APIRouter()
logger = logging.getLogger(__name__)


class ImageUploadIn(BaseModel):
    image_data: str = Field(min_length=1)


class ImageUploadOut(BaseModel):
    url: str


class TranscriptionOut(BaseModel):
    text: str


@router.post("/upload-image", response_model=ImageUploadOut)
def upload_image(
    payload: ImageUploadIn,
    current_user: User = Depends(get_current_user),
) -> ImageUploadOut:
    try:
        url = storage.upload_whiteboard_image(payload.image_data)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_image_data")
    except storage.StorageNotConfigured:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="storage_not_configured")
    except UpstreamUnavailable:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="upload_failed")
    return ImageUploadOut(url=url)


@router.post("/transcribe", response_model=TranscriptionOut)
def transcribe(
    audio: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    client: Optional[OpenAI] = Depends(get_openai_client),
) -> TranscriptionOut:
    if client is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="transcription_not_configured")
    content = audio.file.read()
    try:
        text = transcribe_audio(
            client,
            content,
            filename=audio.filename or "recording.webm",
            model=settings.OPENAI_TRANSCRIPTION_MODEL,
            language=settings.TRANSCRIPTION_LANGUAGE,
        )
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="missing_audio")
    except UpstreamUnavailable:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="transcription_failed")
    return TranscriptionOut(text=text)
