import pytest

from Features.QuickFixes import QUICK_FIX_RULES, QuickFix, generate_quick_fixes, has_pending_fixes

URL = "https://example.com"

COMPLETE_TAGS = {
    "title": "A well sized page title for testing",
    "description": "valid 140-char description",
    "og:title": "x",
    "og:description": "y",
    "og:image": "z",
    "twitter:card": "summary",
    "twitter:title": "t",
    "canonical": "https://example.com",
    "robots": "index, follow",
}


def ids(fixes):
    return [fix.id for fix in fixes]


def by_id(fixes, fix_id):
    return next(fix for fix in fixes if fix.id == fix_id)


@pytest.mark.parametrize("title", [None, "", "Short", "123456789"])
def test_short_or_missing_title_yields_title_missing(title):
    tags = dict(COMPLETE_TAGS)
    if title is None:
        del tags["title"]
    else:
        tags["title"] = title

    fixes = generate_quick_fixes(tags, URL)

    assert ids(fixes).count("title-missing") == 1
    assert "title-too-long" not in ids(fixes)
    fix = by_id(fixes, "title-missing")
    assert fix.impact == "high"
    assert fix.difficulty == "easy"
    assert fix.editable is True
    assert fix.text_type == "metaTitle"
    assert fix.implementation == "<title>Your Primary Keyword - Brand Name</title>"


def test_title_boundaries():
    assert "title-missing" not in ids(generate_quick_fixes({**COMPLETE_TAGS, "title": "a" * 10}, URL))
    assert "title-too-long" not in ids(generate_quick_fixes({**COMPLETE_TAGS, "title": "a" * 60}, URL))
    assert "title-too-long" in ids(generate_quick_fixes({**COMPLETE_TAGS, "title": "a" * 61}, URL))


def test_long_title_is_truncated_to_57_chars():
    title = "".join(chr(ord("a") + i % 26) for i in range(75))

    fixes = generate_quick_fixes({**COMPLETE_TAGS, "title": title}, URL)

    assert ids(fixes).count("title-too-long") == 1
    fix = by_id(fixes, "title-too-long")
    assert fix.implementation == f"<title>{title[:57]}...</title>"
    assert fix.impact == "medium"
    assert "(75 chars)" in fix.description


def test_missing_description():
    tags = {k: v for k, v in COMPLETE_TAGS.items() if k != "description"}

    fix = by_id(generate_quick_fixes(tags, URL), "desc-missing")

    assert fix.impact == "high"
    assert "150-160 character" in fix.implementation
    assert fix.text_type == "metaDescription"


def test_long_description_is_truncated_to_157_chars():
    description = "d" * 150 + "e" * 20

    fixes = generate_quick_fixes({**COMPLETE_TAGS, "description": description}, URL)

    assert "desc-missing" not in ids(fixes)
    fix = by_id(fixes, "desc-too-long")
    assert fix.implementation == f'<meta name="description" content="{description[:157]}..." />'
    assert fix.impact == "medium"


def test_description_at_160_chars_is_fine():
    fixes = generate_quick_fixes({**COMPLETE_TAGS, "description": "d" * 160}, URL)
    assert "desc-too-long" not in ids(fixes)


@pytest.mark.parametrize("missing", [
    ["og:title"], ["og:description"], ["og:image"], ["og:title", "og:image"],
    ["og:title", "og:description", "og:image"],
])
def test_any_missing_og_tag_yields_one_combined_fix(missing):
    tags = {k: v for k, v in COMPLETE_TAGS.items() if k not in missing}

    fixes = generate_quick_fixes(tags, URL)

    assert ids(fixes).count("og-tags-missing") == 1


def test_og_fix_uses_page_values_and_real_url():
    tags = {"title": "My Great Page Title", "description": "About my page"}

    implementation = by_id(generate_quick_fixes(tags, URL), "og-tags-missing").implementation

    assert '<meta property="og:title" content="My Great Page Title" />' in implementation
    assert '<meta property="og:description" content="About my page" />' in implementation
    assert '<meta property="og:image" content="https://example.com/image.jpg" />' in implementation
    assert f'<meta property="og:url" content="{URL}" />' in implementation


def test_og_fix_falls_back_to_placeholders():
    implementation = by_id(generate_quick_fixes({}, "https://site.test/page"), "og-tags-missing").implementation

    assert 'content="Your Title"' in implementation
    assert 'content="Your description"' in implementation
    assert 'content="https://site.test/page"' in implementation


@pytest.mark.parametrize("missing", [["twitter:card"], ["twitter:title"], ["twitter:card", "twitter:title"]])
def test_missing_twitter_tags_yield_one_combined_fix(missing):
    tags = {k: v for k, v in COMPLETE_TAGS.items() if k not in missing}

    fixes = generate_quick_fixes(tags, URL)

    assert ids(fixes).count("twitter-tags-missing") == 1
    fix = by_id(fixes, "twitter-tags-missing")
    assert fix.impact == "low"
    assert '<meta name="twitter:card" content="summary_large_image" />' in fix.implementation


@pytest.mark.parametrize("status", ["needs-improvement", "poor"])
def test_web_vitals_fixes(status):
    metrics = {"lcp": {"status": status}, "cls": {"status": status}, "fid": {"status": "poor"}}

    fixes = generate_quick_fixes(COMPLETE_TAGS, URL, metrics)

    lcp = by_id(fixes, "lcp-improvement")
    cls = by_id(fixes, "cls-improvement")
    assert (lcp.impact, lcp.difficulty, lcp.category) == ("high", "medium", "performance")
    assert (cls.impact, cls.difficulty, cls.category) == ("high", "medium", "performance")
    assert 'loading="lazy"' in lcp.implementation
    assert "min-height: 250px;" in cls.implementation


def test_good_web_vitals_yield_no_performance_fixes():
    metrics = {"lcp": {"status": "good"}, "cls": {"status": "good"}, "fid": {"status": "poor"}}

    fixes = generate_quick_fixes(COMPLETE_TAGS, URL, metrics)

    assert "lcp-improvement" not in ids(fixes)
    assert "cls-improvement" not in ids(fixes)


def test_only_lcp_needs_work():
    fixes = generate_quick_fixes(COMPLETE_TAGS, URL, {"lcp": {"status": "poor"}, "cls": {"status": "good"}})
    assert "lcp-improvement" in ids(fixes)
    assert "cls-improvement" not in ids(fixes)


def test_canonical_fix_uses_url():
    tags = {k: v for k, v in COMPLETE_TAGS.items() if k != "canonical"}

    fix = by_id(generate_quick_fixes(tags, "https://example.com/blog"), "canonical-missing")

    assert fix.implementation == '<link rel="canonical" href="https://example.com/blog" />'
    assert fix.impact == "medium"


def test_noindex_fix():
    fixes = generate_quick_fixes({**COMPLETE_TAGS, "robots": "noindex"}, URL)

    fix = by_id(fixes, "noindex-issue")
    assert fix.implementation == '<meta name="robots" content="index, follow" />'
    assert fix.impact == "high"


def test_structured_data_always_present():
    for tags in ({}, COMPLETE_TAGS, {"robots": "noindex"}):
        assert "structured-data" in ids(generate_quick_fixes(tags, URL))


def test_structured_data_uses_page_values():
    fix = by_id(generate_quick_fixes(COMPLETE_TAGS, URL), "structured-data")

    assert '"@type": "WebPage"' in fix.implementation
    assert f'"name": "{COMPLETE_TAGS["title"]}"' in fix.implementation
    assert '"description": "valid 140-char description"' in fix.implementation
    assert (fix.impact, fix.difficulty) == ("medium", "medium")


def test_scenario_empty_tags():
    fixes = generate_quick_fixes({}, "https://example.com")

    assert ids(fixes) == [
        "title-missing", "desc-missing", "og-tags-missing",
        "twitter-tags-missing", "canonical-missing", "structured-data",
    ]
    structured = by_id(fixes, "structured-data").implementation
    assert '"name": "Page Title"' in structured
    assert '"description": "Page Description"' in structured


def test_scenario_long_title_only():
    tags = {**COMPLETE_TAGS, "title": "A" * 70}

    assert ids(generate_quick_fixes(tags, URL)) == ["title-too-long", "structured-data"]


def test_scenario_long_title_and_noindex():
    tags = {**COMPLETE_TAGS, "title": "A" * 70, "robots": "noindex, nofollow"}

    assert ids(generate_quick_fixes(tags, URL)) == ["title-too-long", "noindex-issue", "structured-data"]


def test_full_rule_order():
    metrics = {"lcp": {"status": "poor"}, "cls": {"status": "poor"}}

    fixes = generate_quick_fixes({"title": "A" * 70, "description": "B" * 200, "robots": "noindex"}, URL, metrics)

    assert ids(fixes) == [
        "title-too-long", "desc-too-long", "og-tags-missing", "twitter-tags-missing",
        "lcp-improvement", "cls-improvement", "canonical-missing", "noindex-issue", "structured-data",
    ]
    assert len(set(ids(fixes))) == len(fixes)


def test_generation_is_deterministic():
    tags = {"title": "Hi", "robots": "noindex"}
    assert generate_quick_fixes(tags, URL) == generate_quick_fixes(tags, URL)


def test_input_tags_are_not_modified():
    tags = {"title": "A" * 70}
    generate_quick_fixes(tags, URL)
    assert tags == {"title": "A" * 70}


def test_rule_table_has_one_rule_per_fix():
    assert len(QUICK_FIX_RULES) == 11


def test_to_dict_uses_wire_names_and_omits_unset_fields():
    fixes = generate_quick_fixes({}, URL)

    title_fix = by_id(fixes, "title-missing").to_dict()
    canonical_fix = by_id(fixes, "canonical-missing").to_dict()

    assert title_fix["textType"] == "metaTitle"
    assert title_fix["editable"] is True
    assert "textType" not in canonical_fix
    assert "editable" not in canonical_fix
    assert QuickFix(**title_fix) == by_id(fixes, "title-missing")


def test_has_pending_fixes_ignores_structured_data():
    assert not has_pending_fixes(generate_quick_fixes(COMPLETE_TAGS, URL))
    assert has_pending_fixes(generate_quick_fixes({}, URL))
    assert not has_pending_fixes([])
