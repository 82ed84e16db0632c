# routers/workspace.py — Read-only panels fed by host collaborators
from fastapi import APIRouter, Depends, Request

from collaborators import PeerStatusProber, DocumentScanner
from errors import NotFound

router = APIRouter(prefix="/api", tags=["Workspace"])


def get_prober(request: Request) -> PeerStatusProber:
    return request.app.state.prober


def get_scanner(request: Request) -> DocumentScanner:
    return request.app.state.scanner


@router.get("/team")
async def team_status(prober: PeerStatusProber = Depends(get_prober)):
    """Online state and model configuration of each peer process"""
    return await prober.probe()


@router.get("/brain/documents")
async def brain_documents(scanner: DocumentScanner = Depends(get_scanner)):
    return await scanner.scan()


@router.get("/brain/documents/{doc_type}/{slug}")
async def brain_document(doc_type: str, slug: str, scanner: DocumentScanner = Depends(get_scanner)):
    content = await scanner.get(doc_type, slug)
    if content is None:
        raise NotFound("document", code="TB-DOC-004")
    return {"content": content}
