"""
Snippet endpoint: serves code pinned on IPFS through the gateway fallback loader.
"""

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from blog_analytics.api.v1.deps import enforce_api_rate_limit, get_ipfs_loader
from blog_analytics.services.ipfs_service import IpfsContentLoader

router = APIRouter(dependencies=[Depends(enforce_api_rate_limit)])


class SnippetResponse(BaseModel):
    success: bool = True
    hash: str
    gateway: str
    content: str
    line_count: int = Field(..., alias="lineCount")

    class Config:
        populate_by_name = True


@router.get(
    "/snippets/{content_hash}",
    response_model=SnippetResponse,
    status_code=status.HTTP_200_OK,
)
def get_snippet(content_hash: str, loader: IpfsContentLoader = Depends(get_ipfs_loader)):
    """
    Load a snippet by IPFS content hash.

    Gateways are tried in order; HTML error pages are skipped and base64
    payloads are decoded.
    """
    snippet = loader.fetch(content_hash)
    return SnippetResponse(
        hash=snippet.hash,
        gateway=snippet.gateway,
        content=snippet.content,
        line_count=snippet.line_count,
    )
