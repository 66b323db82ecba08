"""Complete weekly content strategy for one selected topic.

Produces five sections: seven Instagram posts, a blog outline, an ebook
chapter, Etsy printables and affiliate placements. When generation fails
the templated strategy below is stored instead, so the week can still be
reviewed and edited.
"""

from typing import Any, Dict, List

from ...errors import UnparsableResponse
from ...models.sections import (
    AffiliateProduct,
    AffiliatesSection,
    BlogSection,
    EbookSection,
    EtsyProduct,
    EtsySection,
    InstagramPost,
    InstagramSection,
)
from ..parser import FieldSpec, RecordSchema, extract_json
from .base import PipelineConfig, error_text

SECTIONS = ["instagram", "blog", "ebook", "etsy", "affiliates"]

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

TEMPLATE_NOTICE = "⚠️ Template content, not written for this topic by the AI. Review before publishing."

STRATEGY_PROMPT_TEMPLATE = """You are the content strategist for "The Mindful NL", a mindful parenting and children's yoga brand in the Netherlands.

Build a complete week of content around this topic:
{topic}

Return ONLY valid JSON with EXACTLY these keys:
{{
  "instagram": [
    {{"day": "monday", "type": "reel|carousel|post|story", "title": "...", "caption": "...", "hook": "...", "hashtags": ["..."], "goal": "reach|engagement|saves|conversions"}}
  ],
  "blog": {{"title": "...", "outline": ["..."], "seo_keywords": ["..."], "target_word_count": 2500, "lead_magnet": "..."}},
  "ebook": {{"chapter_number": 3, "title": "...", "outline": ["..."], "worksheets": ["..."]}},
  "etsy": [{{"name": "...", "type": "printable", "description": "...", "price": 4.99, "seo_tags": ["..."]}}],
  "affiliates": [{{"product_name": "...", "link": "https://...", "platform": "amazon|bol.com|etsy_affiliate", "mention_in": ["blog"]}}]
}}

RULES:
1. Exactly 7 Instagram posts, one per day from monday to sunday
2. Sunday's post converts to the parent-child yoga class
3. Hashtags mix English and Dutch, without the # sign
4. Three Etsy printables between 4.99 and 9.99
5. Four affiliate products placed where they fit naturally"""

POST_SCHEMA = RecordSchema(
    fields={
        "day": FieldSpec(default=""),
        "type": FieldSpec(default="post"),
        "title": FieldSpec(default="Untitled Post"),
        "caption": FieldSpec(default=""),
        "hook": FieldSpec(default=""),
        "hashtags": FieldSpec(default=[], type=list),
        "goal": FieldSpec(default="reach"),
    }
)

BLOG_SCHEMA = RecordSchema(
    fields={
        "title": FieldSpec(default="Untitled Blog Post"),
        "outline": FieldSpec(default=[], type=list),
        "seo_keywords": FieldSpec(default=[], type=list, aliases=("seoKeywords",)),
        "target_word_count": FieldSpec(
            default=1500, type=int, aliases=("targetWordCount",)
        ),
        "lead_magnet": FieldSpec(default=None, aliases=("leadMagnet",)),
    }
)

EBOOK_SCHEMA = RecordSchema(
    fields={
        "chapter_number": FieldSpec(default=1, type=int, aliases=("chapterNumber",)),
        "title": FieldSpec(default="Untitled Chapter"),
        "outline": FieldSpec(default=[], type=list),
        "worksheets": FieldSpec(default=[], type=list),
    }
)

ETSY_SCHEMA = RecordSchema(
    fields={
        "name": FieldSpec(default="Untitled Printable"),
        "type": FieldSpec(default="printable"),
        "description": FieldSpec(default=""),
        "price": FieldSpec(default=4.99, type=float),
        "seo_tags": FieldSpec(default=[], type=list, aliases=("seoTags",)),
    }
)

AFFILIATE_SCHEMA = RecordSchema(
    fields={
        "product_name": FieldSpec(default="Unnamed Product", aliases=("productName",)),
        "link": FieldSpec(default=""),
        "platform": FieldSpec(default="amazon"),
        "mention_in": FieldSpec(default=[], type=list, aliases=("mentionIn",)),
    }
)


def build_prompt(topic: str, context: Dict[str, Any]) -> str:
    return STRATEGY_PROMPT_TEMPLATE.format(topic=topic)


def _first(payload: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if payload.get(key):
            return payload[key]
    return None


def parse(raw: str, topic: str, context: Dict[str, Any]) -> Dict[str, Any]:
    payload = extract_json(raw)
    if not isinstance(payload, dict):
        raise UnparsableResponse("Expected a JSON object with strategy sections", raw=raw)

    template = _marked(template_strategy(topic), TEMPLATE_NOTICE)
    sections: Dict[str, Any] = {}

    posts = POST_SCHEMA.normalize_many(_first(payload, "instagram", "instagramContent"))
    for index, post in enumerate(posts):
        if not post["day"]:
            post["day"] = WEEKDAYS[index % len(WEEKDAYS)]
    sections["instagram"] = (
        InstagramSection(posts=[InstagramPost(**p) for p in posts])
        if posts
        else template["instagram"]
    )

    blog = _first(payload, "blog", "blogPost")
    sections["blog"] = (
        BlogSection(**BLOG_SCHEMA.normalize(blog))
        if isinstance(blog, dict)
        else template["blog"]
    )

    ebook = _first(payload, "ebook", "ebookChapter")
    sections["ebook"] = (
        EbookSection(**EBOOK_SCHEMA.normalize(ebook))
        if isinstance(ebook, dict)
        else template["ebook"]
    )

    products = ETSY_SCHEMA.normalize_many(_first(payload, "etsy", "etsyProducts"))
    sections["etsy"] = (
        EtsySection(products=[EtsyProduct(**p) for p in products])
        if products
        else template["etsy"]
    )

    affiliates = AFFILIATE_SCHEMA.normalize_many(
        _first(payload, "affiliates", "affiliateProducts")
    )
    sections["affiliates"] = (
        AffiliatesSection(products=[AffiliateProduct(**a) for a in affiliates])
        if affiliates
        else template["affiliates"]
    )

    return sections


def fallback(topic: str, context: Dict[str, Any], error: Exception) -> Dict[str, Any]:
    notice = f"{TEMPLATE_NOTICE} Generation failed: {error_text(error)}"
    return _marked(template_strategy(topic), notice)


def _marked(sections: Dict[str, Any], notice: str) -> Dict[str, Any]:
    return {name: section.model_copy(update={"notice": notice}) for name, section in sections.items()}


def _posts(topic: str) -> List[InstagramPost]:
    return [
        InstagramPost(
            day="monday",
            type="reel",
            title=f"Transform Your Mornings: {topic}",
            caption=(
                "Your mornings don't have to be chaos. Try this 5-minute routine "
                "and watch the magic happen ✨\n\nSave this for tomorrow morning!"
            ),
            hook="Your kid is crying, you're late... here's what actually works 👇",
            hashtags=["morningroutine", "peutersochtends", "calmkids", "gentleparenting", "mindfulness"],
            goal="reach",
        ),
        InstagramPost(
            day="tuesday",
            type="carousel",
            title="Step-by-Step: Complete Guide",
            caption=(
                f"Here's exactly how to implement {topic} 📋\n\nSlide to see all 10 "
                "steps!\n\nWhich step will you try first? Comment below 👇"
            ),
            hook="Save this! Your new routine starts here",
            hashtags=["parentinghacks", "montessorimornings", "toddlerlife", "mindfulopvoeden"],
            goal="saves",
        ),
        InstagramPost(
            day="wednesday",
            type="story",
            title="Behind the Scenes",
            caption=(
                "Watch me try this with my own kids! Real, unfiltered morning "
                "chaos → calm ✨\n\nSwipe up to download the FREE printable checklist"
            ),
            hook="Let me show you how messy it really is 😅",
            hashtags=["realparenting", "parentingreel", "authenticparenting"],
            goal="engagement",
        ),
        InstagramPost(
            day="thursday",
            type="reel",
            title="Common Mistakes to Avoid",
            caption=(
                "❌ STOP doing these 3 things during your morning routine!\n\n"
                "I made ALL these mistakes... so you don't have to 🙏"
            ),
            hook="I wish someone told me this sooner...",
            hashtags=["parentingmistakes", "parentingtips", "mindfulparenting"],
            goal="reach",
        ),
        InstagramPost(
            day="friday",
            type="post",
            title="Success Stories from Real Parents",
            caption=(
                '💬 "We tried this routine for 7 days and our mornings are SO much '
                'calmer!"\n\n📸 Share YOUR results! Tag me for a feature'
            ),
            hook="This is what happens when you stick with it...",
            hashtags=["successstory", "parentingwins", "parentingtransformation"],
            goal="engagement",
        ),
        InstagramPost(
            day="saturday",
            type="carousel",
            title="Weekend Bonus: Advanced Tips",
            caption=(
                "🎯 Ready to level up? These 5 advanced techniques will make your "
                "routine even smoother"
            ),
            hook="Once you've mastered the basics...",
            hashtags=["advancedparenting", "parentinghacks", "mindfulness"],
            goal="saves",
        ),
        InstagramPost(
            day="sunday",
            type="reel",
            title="Join My Yoga Class - Special Offer",
            caption=(
                "Want MORE calming techniques for your family?\n\n🧘‍♀️ Join my "
                "Parent-Child Yoga class in Amsterdam\n🎁 First class FREE with "
                "code: CALM2026\n\nLink in bio to register!"
            ),
            hook="This is how we practice these techniques together...",
            hashtags=["yogaclass", "amsterdamyoga", "familyyoga", "themindfulnl"],
            goal="conversions",
        ),
    ]


def template_strategy(topic: str) -> Dict[str, Any]:
    """Templated week of content, used when the model cannot deliver one."""
    return {
        "instagram": InstagramSection(posts=_posts(topic)),
        "blog": BlogSection(
            title=f"The Science-Backed {topic}: A Complete Guide",
            outline=[
                "Introduction: Why mornings matter for your child's development",
                "The neuroscience behind routines",
                "The routine explained step-by-step",
                "Age-specific adaptations (2-3 years vs 4-6 years)",
                "Common challenges and how to overcome them",
                "Printable routine chart (FREE download)",
                "FAQ: Your questions answered",
                "Next steps: Join our parent-child yoga class",
            ],
            seo_keywords=[
                "morning routine toddlers",
                "calm kids morning",
                "peuter ochtend routine",
                "mindfulness kids Netherlands",
                "gentle parenting morning",
            ],
            target_word_count=2500,
            lead_magnet="FREE Routine Visual Chart (printable PDF)",
        ),
        "ebook": EbookSection(
            chapter_number=3,
            title=f"Chapter 3: {topic}",
            outline=[
                "Introduction: The routine challenge",
                "Scientific foundation: Why routines work",
                "The complete 5-minute framework",
                "Worksheet 1: Routine planner",
                "Troubleshooting guide",
                "Worksheet 2: Success tracker",
                "Integration with yoga and mindfulness",
            ],
            worksheets=[
                "Routine Visual Chart",
                "Progress Tracker for 30 Days",
                "Breathing Exercises Reference Sheet",
            ],
        ),
        "etsy": EtsySection(
            products=[
                EtsyProduct(
                    name=f"{topic} - Complete Visual Chart Pack",
                    description=(
                        "10-page printable pack: routine chart, blank template, "
                        "reward stickers, progress tracker and breathing exercise "
                        "cards. Includes Dutch & English versions."
                    ),
                    price=4.99,
                    seo_tags=["morning routine", "toddler chart", "printable", "visual schedule"],
                ),
                EtsyProduct(
                    name="30-Day Calm Kids Challenge - Complete Workbook",
                    description=(
                        "Daily activities, progress trackers, breathing exercises, "
                        "yoga poses for kids and parent reflection prompts."
                    ),
                    price=9.99,
                    seo_tags=["parenting challenge", "calm kids", "mindfulness workbook"],
                ),
                EtsyProduct(
                    name="Emotion Regulation Toolkit for Toddlers",
                    description=(
                        "Emotion faces chart, calm-down corner setup guide, "
                        "breathing games and morning/bedtime routines."
                    ),
                    price=7.99,
                    seo_tags=["emotion regulation", "calm down corner", "gentle parenting"],
                ),
            ]
        ),
        "affiliates": AffiliatesSection(
            products=[
                AffiliateProduct(
                    product_name="Gro Clock - Sleep Trainer & Wake-Up Light for Kids",
                    link="https://amazon.nl/gro-clock",
                    platform="amazon",
                    mention_in=["blog", "instagram_monday_reel", "ebook_chapter_3"],
                ),
                AffiliateProduct(
                    product_name="The Whole-Brain Child (Dutch Edition)",
                    link="https://bol.com/whole-brain-child-nl",
                    platform="bol.com",
                    mention_in=["blog", "email_newsletter"],
                ),
                AffiliateProduct(
                    product_name="Mindfulness Breathing Ball for Kids",
                    link="https://amazon.nl/breathing-ball",
                    platform="amazon",
                    mention_in=["instagram_thursday_reel"],
                ),
                AffiliateProduct(
                    product_name="Montessori Morning Routine Wooden Board",
                    link="https://etsy.com/montessori-morning-board",
                    platform="etsy_affiliate",
                    mention_in=["blog", "instagram_tuesday_carousel"],
                ),
            ]
        ),
    }


STRATEGY = PipelineConfig(
    name="strategy",
    description="Full week: Instagram, blog, ebook, Etsy and affiliates",
    sections=SECTIONS,
    placeholders={name: f"⏳ Generating {name} content..." for name in SECTIONS},
    build_prompt=build_prompt,
    parse=parse,
    fallback=fallback,
    temperature=0.8,
    max_output_tokens=8192,
    response_format="json",
)
