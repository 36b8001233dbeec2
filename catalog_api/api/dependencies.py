"""Shared FastAPI dependencies for the catalog routers."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.catalog.service import CatalogService
from catalog_api.domain.value_objects import Audience, Editor
from catalog_api.infrastructure.database import get_session


def get_catalog_service(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> CatalogService:
    """Get catalog service bound to the request session."""
    return CatalogService(session)


def get_editor(request: Request) -> Editor | None:
    """Get the editor resolved by the identity middleware, if any."""
    return getattr(request.state, "editor", None)


def require_editor(
    editor: Annotated[Editor | None, Depends(get_editor)],
) -> Editor:
    """Require an authenticated editor.

    Raises:
        HTTPException: 401 for anonymous callers.
    """
    if editor is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error_code": "UNAUTHORIZED",
                "message": "Editor credentials required",
            },
            headers={"WWW-Authenticate": "Bearer"},
        )
    return editor


def get_audience(
    editor: Annotated[Editor | None, Depends(get_editor)],
) -> Audience:
    """Editors see unpublished products on detail pages; everyone else does not."""
    return Audience.ADMIN if editor is not None else Audience.PUBLIC


ServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]
EditorDep = Annotated[Editor, Depends(require_editor)]
AudienceDep = Annotated[Audience, Depends(get_audience)]
