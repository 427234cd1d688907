"""
Generation history routes, scoped to the caller's anonymous session.

- GET    /api/generations
- POST   /api/generations
- DELETE /api/generations/{generation_id}
"""
from typing import List

from fastapi import APIRouter, Depends

from aistudio.core.errors import NotFoundError
from aistudio.core.middleware.session import get_session_id
from aistudio.features.generations.service import delete_generation, list_generations, save_generation
from aistudio.models.generation import Generation, GenerationCreate

router = APIRouter(prefix="/generations", tags=["generations"])


@router.get("", response_model=List[Generation])
def get_generations(session_id: str = Depends(get_session_id)):
    return list_generations(session_id)


@router.post("", response_model=Generation, status_code=201)
def create_generation(body: GenerationCreate, session_id: str = Depends(get_session_id)):
    return save_generation(session_id, body)


@router.delete("/{generation_id}")
def remove_generation(generation_id: str, session_id: str = Depends(get_session_id)):
    if not delete_generation(session_id, generation_id):
        raise NotFoundError("Generation not found")
    return {"deleted": True, "id": generation_id}
