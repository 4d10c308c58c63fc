from typing import Optional

from pydantic import BaseModel, Field


class ScrapeRequest(BaseModel):
    """JSON body accepted by the scrape endpoints (form posts carry the same field)."""
    url: Optional[str] = Field(None, description="Source page to scrape")
