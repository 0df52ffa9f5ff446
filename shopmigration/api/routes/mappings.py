"""Mapping store inspection endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from ...models.mapping import MappingType
from ...storage.mapping_store import MappingStore
from ..dependencies import get_mapping_store
from ..models import MappingEntryResponse, MappingListResponse

router = APIRouter()


@router.get("/{mapping_type}", response_model=MappingListResponse)
def list_mappings(mapping_type: str, mappings: MappingStore = Depends(get_mapping_store)):
    """List the entries of one key space (article, category, customer, category_target)."""
    try:
        entity_type = MappingType[mapping_type.upper()]
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown mapping type: {mapping_type}")

    entries = [MappingEntryResponse(**e.to_dict()) for e in mappings.entries(entity_type)]
    return MappingListResponse(entries=entries, total=len(entries))
