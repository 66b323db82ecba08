"""Structured section shapes a pipeline can produce.

Every structured section carries a ``kind`` tag so a stored draft can be
loaded back into the right model. Plain text sections are stored as strings.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class PlanDay(BaseModel):
    """One day of a weekly social media plan."""

    day: int
    topic: str
    format: str
    hook: str
    rationale: str


class PlanSection(BaseModel):
    kind: Literal["plan"] = "plan"
    days: List[PlanDay] = Field(default_factory=list)


class TemplatedSection(BaseModel):
    """Section that may hold stock text instead of generated content."""

    notice: Optional[str] = Field(None, description="Shown above the content when it is stock text")


class InstagramPost(BaseModel):
    day: str
    type: str = Field(..., description="reel, carousel, post or story")
    title: str
    caption: str
    hook: str
    hashtags: List[str] = Field(default_factory=list)
    goal: str = Field("reach", description="reach, engagement, saves or conversions")
    canva_design_url: Optional[str] = None


class InstagramSection(TemplatedSection):
    kind: Literal["instagram"] = "instagram"
    posts: List[InstagramPost] = Field(default_factory=list)


class BlogSection(TemplatedSection):
    kind: Literal["blog"] = "blog"
    title: str
    outline: List[str] = Field(default_factory=list)
    seo_keywords: List[str] = Field(default_factory=list)
    target_word_count: int = 1500
    lead_magnet: Optional[str] = None


class EbookSection(TemplatedSection):
    kind: Literal["ebook"] = "ebook"
    chapter_number: int = 1
    title: str
    outline: List[str] = Field(default_factory=list)
    worksheets: List[str] = Field(default_factory=list)


class EtsyProduct(BaseModel):
    name: str
    type: str = "printable"
    description: str
    price: float
    seo_tags: List[str] = Field(default_factory=list)


class EtsySection(TemplatedSection):
    kind: Literal["etsy"] = "etsy"
    products: List[EtsyProduct] = Field(default_factory=list)


class AffiliateProduct(BaseModel):
    product_name: str
    link: str
    platform: str
    mention_in: List[str] = Field(default_factory=list)


class AffiliatesSection(TemplatedSection):
    kind: Literal["affiliates"] = "affiliates"
    products: List[AffiliateProduct] = Field(default_factory=list)


class TailoredAssets(BaseModel):
    """Job application material tailored to one job description."""

    kind: Literal["tailored_assets"] = "tailored_assets"
    match_score: int = Field(50, ge=0, le=100)
    gap_analysis: str
    missing_skills: List[str] = Field(default_factory=list)
    tailored_summary: str
    tailored_resume: str
    dm_draft: str
    cover_letter: str = ""


StructuredSection = Annotated[
    Union[
        PlanSection,
        InstagramSection,
        BlogSection,
        EbookSection,
        EtsySection,
        AffiliatesSection,
        TailoredAssets,
    ],
    Field(discriminator="kind"),
]

SectionContent = Union[str, StructuredSection]


def render_text(content: SectionContent) -> str:
    """Render any section as readable plain text."""
    if isinstance(content, str):
        return content

    lines: List[str] = []
    if isinstance(content, TemplatedSection) and content.notice:
        lines.extend([content.notice, ""])
    if isinstance(content, PlanSection):
        for d in content.days:
            lines.append(f"Day {d.day}: {d.topic} ({d.format})")
            lines.append(f"  Hook: {d.hook}")
            lines.append(f"  Why: {d.rationale}")
    elif isinstance(content, InstagramSection):
        for post in content.posts:
            lines.append(f"{post.day.title()} - {post.type}: {post.title}")
            lines.append(post.hook)
            lines.append(post.caption)
            if post.hashtags:
                lines.append(" ".join(f"#{tag}" for tag in post.hashtags))
            lines.append("")
    elif isinstance(content, (BlogSection, EbookSection)):
        if isinstance(content, EbookSection):
            lines.append(f"Chapter {content.chapter_number}: {content.title}")
        else:
            lines.append(content.title)
        lines.extend(f"- {item}" for item in content.outline)
        if isinstance(content, BlogSection):
            if content.seo_keywords:
                lines.append(f"Keywords: {', '.join(content.seo_keywords)}")
            if content.lead_magnet:
                lines.append(f"Lead magnet: {content.lead_magnet}")
        else:
            lines.extend(f"Worksheet: {w}" for w in content.worksheets)
    elif isinstance(content, EtsySection):
        for product in content.products:
            lines.append(f"{product.name} ({product.type}, {product.price:.2f})")
            lines.append(product.description)
            lines.append("")
    elif isinstance(content, AffiliatesSection):
        for product in content.products:
            lines.append(f"{product.product_name} [{product.platform}] {product.link}")
    elif isinstance(content, TailoredAssets):
        lines.append(f"Match score: {content.match_score}/100")
        lines.append(content.tailored_summary)
        lines.append("")
        lines.append(content.tailored_resume)
        if content.cover_letter:
            lines.append("")
            lines.append(content.cover_letter)

    return "\n".join(lines).strip()
