from typing import Callable, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field

PLACEHOLDER_IMAGE = "https://example.com/image.jpg"


class QuickFix(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    description: str
    implementation: str
    category: Literal["meta-tags", "performance", "content", "accessibility", "images"]
    difficulty: Literal["easy", "medium", "hard"]
    impact: Literal["low", "medium", "high"]
    editable: bool | None = None
    text_type: Literal[
        "metaTitle", "metaDescription", "ogTitle", "ogDescription", "twitterTitle", "twitterDescription"
    ] | None = Field(default=None, alias="textType")

    def to_dict(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class QuickFixRule(NamedTuple):
    predicate: Callable[[dict, str, dict | None], bool]
    builder: Callable[[dict, str, dict | None], QuickFix]


def _metric_needs_work(metrics: dict | None, name: str) -> bool:
    if not metrics:
        return False
    metric = metrics.get(name)
    if not metric:
        return False
    status = metric.get("status") if isinstance(metric, dict) else getattr(metric, "status", None)
    return status != "good"


# --- Title ---

def _title_missing(tags, url, metrics):
    title = tags.get("title") or ""
    return len(title) < 10


def _title_too_long(tags, url, metrics):
    return not _title_missing(tags, url, metrics) and len(tags["title"]) > 60


def _build_title_missing(tags, url, metrics):
    return QuickFix(
        id="title-missing",
        title="Add SEO-Friendly Title Tag",
        description="Your page is missing a proper title tag which is critical for SEO.",
        implementation="<title>Your Primary Keyword - Brand Name</title>",
        category="meta-tags", difficulty="easy", impact="high",
        editable=True, text_type="metaTitle",
    )


def _build_title_too_long(tags, url, metrics):
    title = tags["title"]
    return QuickFix(
        id="title-too-long",
        title="Optimize Title Length",
        description=f"Your title ({len(title)} chars) is too long and will be truncated in search results.",
        implementation=f"<title>{title[:57]}...</title>",
        category="meta-tags", difficulty="easy", impact="medium",
        editable=True, text_type="metaTitle",
    )


# --- Meta description ---

def _desc_missing(tags, url, metrics):
    return not tags.get("description")


def _desc_too_long(tags, url, metrics):
    return not _desc_missing(tags, url, metrics) and len(tags["description"]) > 160


def _build_desc_missing(tags, url, metrics):
    return QuickFix(
        id="desc-missing",
        title="Add Meta Description",
        description="Your page is missing a meta description, which helps improve click-through rates.",
        implementation=(
            '<meta name="description" content="Add a compelling 150-160 character description '
            'of your page here, including your target keywords naturally." />'
        ),
        category="meta-tags", difficulty="easy", impact="high",
        editable=True, text_type="metaDescription",
    )


def _build_desc_too_long(tags, url, metrics):
    description = tags["description"]
    return QuickFix(
        id="desc-too-long",
        title="Shorten Meta Description",
        description=f"Your description ({len(description)} chars) is too long and will be truncated.",
        implementation=f'<meta name="description" content="{description[:157]}..." />',
        category="meta-tags", difficulty="easy", impact="medium",
        editable=True, text_type="metaDescription",
    )


# --- Social tags ---

def _og_tags_missing(tags, url, metrics):
    return not all(tags.get(name) for name in ("og:title", "og:description", "og:image"))


def _twitter_tags_missing(tags, url, metrics):
    return not tags.get("twitter:card") or not tags.get("twitter:title")


def _build_og_tags(tags, url, metrics):
    title = tags.get("title") or "Your Title"
    description = tags.get("description") or "Your description"
    return QuickFix(
        id="og-tags-missing",
        title="Add Open Graph Tags",
        description=(
            "Your page is missing Open Graph tags, which improve how your content "
            "appears when shared on social media."
        ),
        implementation="\n".join([
            f'<meta property="og:title" content="{title}" />',
            f'<meta property="og:description" content="{description}" />',
            f'<meta property="og:image" content="{PLACEHOLDER_IMAGE}" />',
            f'<meta property="og:url" content="{url}" />',
        ]),
        category="meta-tags", difficulty="easy", impact="medium",
        editable=True, text_type="ogDescription",
    )


def _build_twitter_tags(tags, url, metrics):
    title = tags.get("title") or "Your Title"
    description = tags.get("description") or "Your description"
    return QuickFix(
        id="twitter-tags-missing",
        title="Add Twitter Card Tags",
        description="Adding Twitter Card tags will enhance your content when shared on Twitter.",
        implementation="\n".join([
            '<meta name="twitter:card" content="summary_large_image" />',
            f'<meta name="twitter:title" content="{title}" />',
            f'<meta name="twitter:description" content="{description}" />',
            f'<meta name="twitter:image" content="{PLACEHOLDER_IMAGE}" />',
        ]),
        category="meta-tags", difficulty="easy", impact="low",
        editable=True, text_type="twitterDescription",
    )


# --- Core Web Vitals ---

LCP_SNIPPET = """// Add image dimensions
<img src="image.jpg" width="800" height="600" />

// Use preload for critical resources
<link rel="preload" href="critical.css" as="style" />

// Implement lazy loading for non-critical images
<img loading="lazy" src="non-critical.jpg" />"""

CLS_SNIPPET = """// Always include dimensions for images and videos
<img src="image.jpg" width="800" height="600" />

// Use CSS aspect-ratio or padding-top technique for responsive elements
.responsive-container {
  position: relative;
  width: 100%;
  padding-top: 56.25%; /* 16:9 aspect ratio */
}

// Reserve space for dynamic content like ads
.ad-container {
  min-height: 250px;
}"""


def _build_lcp(tags, url, metrics):
    return QuickFix(
        id="lcp-improvement",
        title="Improve Largest Contentful Paint",
        description="Your page's main content takes too long to load, affecting user experience and SEO.",
        implementation=LCP_SNIPPET,
        category="performance", difficulty="medium", impact="high",
    )


def _build_cls(tags, url, metrics):
    return QuickFix(
        id="cls-improvement",
        title="Fix Layout Shifts",
        description="Your page has layout shifts that create a poor user experience and impact Core Web Vitals.",
        implementation=CLS_SNIPPET,
        category="performance", difficulty="medium", impact="high",
    )


# --- Indexing ---

def _build_canonical(tags, url, metrics):
    return QuickFix(
        id="canonical-missing",
        title="Add Canonical URL",
        description="Your page is missing a canonical tag, which helps prevent duplicate content issues.",
        implementation=f'<link rel="canonical" href="{url}" />',
        category="meta-tags", difficulty="easy", impact="medium",
    )


def _build_noindex(tags, url, metrics):
    return QuickFix(
        id="noindex-issue",
        title="Remove noindex Directive",
        description="Your page has a noindex directive that prevents search engines from indexing it.",
        implementation='<meta name="robots" content="index, follow" />',
        category="meta-tags", difficulty="easy", impact="high",
    )


def _build_structured_data(tags, url, metrics):
    title = tags.get("title") or "Page Title"
    description = tags.get("description") or "Page Description"
    return QuickFix(
        id="structured-data",
        title="Add Structured Data",
        description=(
            "Implement schema markup to help search engines understand your content "
            "and potentially show rich results."
        ),
        implementation=f"""<script type="application/ld+json">
{{
  "@context": "https://schema.org",
  "@type": "WebPage",
  "name": "{title}",
  "description": "{description}"
}}
</script>""",
        category="meta-tags", difficulty="medium", impact="medium",
    )


# Evaluated top to bottom against the same snapshot; every matching rule contributes one fix.
QUICK_FIX_RULES: tuple[QuickFixRule, ...] = (
    QuickFixRule(_title_missing, _build_title_missing),
    QuickFixRule(_title_too_long, _build_title_too_long),
    QuickFixRule(_desc_missing, _build_desc_missing),
    QuickFixRule(_desc_too_long, _build_desc_too_long),
    QuickFixRule(_og_tags_missing, _build_og_tags),
    QuickFixRule(_twitter_tags_missing, _build_twitter_tags),
    QuickFixRule(lambda tags, url, metrics: _metric_needs_work(metrics, "lcp"), _build_lcp),
    QuickFixRule(lambda tags, url, metrics: _metric_needs_work(metrics, "cls"), _build_cls),
    QuickFixRule(lambda tags, url, metrics: not tags.get("canonical"), _build_canonical),
    QuickFixRule(lambda tags, url, metrics: "noindex" in (tags.get("robots") or ""), _build_noindex),
    QuickFixRule(lambda tags, url, metrics: True, _build_structured_data),
)


def generate_quick_fixes(tags: dict, url: str, metrics: dict | None = None) -> list[QuickFix]:
    """
    Builds the ordered list of quick fixes for a page.

    Args:
        tags (dict): Extracted meta tags keyed by name (e.g. "title", "og:image").
        url (str): The analyzed page URL, used verbatim in canonical and Open Graph snippets.
        metrics (dict, optional): Core Web Vitals keyed by "lcp", "cls", "fid", each carrying a "status".

    Returns:
        list[QuickFix]: One fix per matching rule, in rule order.
    """
    tags = tags or {}
    return [rule.builder(tags, url, metrics) for rule in QUICK_FIX_RULES if rule.predicate(tags, url, metrics)]


def has_pending_fixes(fixes: list[QuickFix]) -> bool:
    # structured-data is always suggested, so it alone does not count as pending work
    return any(fix.id != "structured-data" for fix in fixes)
