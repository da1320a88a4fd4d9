from pydantic import BaseModel, Field, model_validator


class ListingRules(BaseModel):
    # The remote store returns at most 100 entries per page.
    default_limit: int = Field(default=20, ge=1, le=100)
    max_limit: int = Field(default=100, ge=1, le=100)

    @model_validator(mode="after")
    def _default_within_max(self) -> "ListingRules":
        if self.default_limit > self.max_limit:
            raise ValueError("default_limit cannot exceed max_limit")
        return self


class UrlRules(BaseModel):
    host_suffix: str = "cloudinary.com"
    upload_marker: str = "/upload/"


class ImageRules(BaseModel):
    resource_type: str = "image"
    listing: ListingRules = ListingRules()
    urls: UrlRules = UrlRules()


class Rules(BaseModel):
    images: ImageRules = ImageRules()


DEFAULT_RULES = Rules()
