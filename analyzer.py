import json
import logging
import math
import os
import pprint
import sys
from urllib.parse import urlparse

from scraper import extract_meta_tags
from Features.CoreWebVitalsTest import core_web_vitals_test
from Features.KeywordAnalysisTest import analyze_keywords
from Features.QuickFixes import generate_quick_fixes, has_pending_fixes

# Optional tags that each add a few points once present
EXTRA_TAG_POINTS = {
    "x-ua-compatible": 3, "author": 3, "theme-color": 3, "generator": 3, "application-name": 3,
}

COMPARISON_CATEGORIES = {
    "overall": {
        "name": "Overall SEO Score",
        "description": "Overall SEO score based on meta tag implementation",
    },
    "metaTags": {
        "name": "Meta Tags",
        "description": "Basic meta tags (title, description, etc.)",
    },
    "socialMedia": {
        "name": "Social Media",
        "description": "Social media tags (Open Graph, Twitter Cards)",
    },
    "technicalSeo": {
        "name": "Technical SEO",
        "description": "Technical SEO elements (viewport, charset, etc.)",
    },
}


def _length_in(value: str, low: int, high: int) -> bool:
    return low <= len(value) <= high


def has_language(tags: dict) -> bool:
    return bool(tags.get("content-language") or "lang" in (tags.get("html") or ""))


def calculate_seo_score(tags: dict) -> int:
    score = 0.0

    if title := tags.get("title"):
        score += 10 if _length_in(title, 30, 60) else 5
    if description := tags.get("description"):
        score += 10 if _length_in(description, 120, 160) else 5

    if tags.get("canonical"): score += 10
    if tags.get("robots"): score += 5

    # Open Graph (falls back to partial credit for plain meta tags)
    if tags.get("og:title"): score += 5
    elif tags.get("title"): score += 2.5
    if tags.get("og:description"): score += 5
    elif tags.get("description"): score += 2.5
    if tags.get("og:image"): score += 5

    # Twitter Cards (partial credit for Open Graph equivalents)
    if tags.get("twitter:card"): score += 5
    if tags.get("twitter:title"): score += 4
    elif tags.get("og:title"): score += 2
    if tags.get("twitter:description"): score += 3
    elif tags.get("og:description"): score += 1.5
    if tags.get("twitter:image"): score += 3
    elif tags.get("og:image"): score += 1.5

    if tags.get("viewport"): score += 5
    if has_language(tags): score += 5
    if tags.get("charset"): score += 5
    if tags.get("keywords"): score += 5

    score += sum(points for name, points in EXTRA_TAG_POINTS.items() if tags.get(name))

    # half-up rounding
    return min(math.floor(score + 0.5), 100)


def count_tags_by_status(tags: dict) -> dict:
    counts = {"good": 0, "warning": 0, "error": 0}

    def grade(status):
        counts[status] += 1

    for name, low, high in (("title", 30, 60), ("description", 120, 160)):
        value = tags.get(name)
        if not value: grade("error")
        elif _length_in(value, low, high): grade("good")
        else: grade("warning")

    grade("good" if tags.get("canonical") else "error")
    grade("good" if tags.get("robots") else "warning")

    for social, fallback in (("og:title", "title"), ("og:description", "description")):
        if tags.get(social): grade("good")
        elif tags.get(fallback): grade("warning")
        else: grade("error")
    grade("good" if tags.get("og:image") else "error")

    grade("good" if tags.get("twitter:card") else "error")
    for social, fallback in (("twitter:title", "og:title"), ("twitter:image", "og:image")):
        if tags.get(social): grade("good")
        elif tags.get(fallback): grade("warning")
        else: grade("error")

    grade("good" if tags.get("viewport") else "warning")
    grade("good" if has_language(tags) else "warning")
    grade("good" if tags.get("charset") else "warning")

    return counts


def _meta_tags_score(tags: dict) -> int:
    score = 0
    if title := tags.get("title"):
        score += 10 if _length_in(title, 30, 60) else 5
    if description := tags.get("description"):
        score += 10 if _length_in(description, 120, 160) else 5
    if tags.get("canonical"): score += 10
    if tags.get("robots"): score += 5
    if tags.get("keywords"): score += 5
    return min(score, 30)


def _social_media_score(tags: dict) -> int:
    points = {
        "og:title": 5, "og:description": 5, "og:image": 5,
        "twitter:card": 5, "twitter:title": 5, "twitter:description": 3, "twitter:image": 2,
    }
    return min(sum(value for name, value in points.items() if tags.get(name)), 30)


def _technical_seo_score(tags: dict) -> int:
    score = 0
    if tags.get("viewport"): score += 8
    if has_language(tags): score += 8
    if tags.get("charset"): score += 7
    if tags.get("x-ua-compatible"): score += 7
    return min(score, 30)


def generate_comparison_categories(primary: dict, competitors: list) -> list:
    """
    Scores the primary site and its competitors side by side.

    Each category lists one score per site (primary first) and the index of
    the leading site; ties go to the earliest site.
    """
    sites = [primary, *competitors]
    scorers = {
        "overall": lambda site: site["score"],
        "metaTags": lambda site: _meta_tags_score(site["tags"]),
        "socialMedia": lambda site: _social_media_score(site["tags"]),
        "technicalSeo": lambda site: _technical_seo_score(site["tags"]),
    }

    categories = []
    for key, scorer in scorers.items():
        scores = [scorer(site) for site in sites]
        categories.append({
            "name": COMPARISON_CATEGORIES[key]["name"],
            "key": key,
            "description": COMPARISON_CATEGORIES[key]["description"],
            "leader": scores.index(max(scores)),
            "scores": scores,
        })
    return categories


def build_seo_report(tags: dict, url: str, web_vitals: dict | None = None,
                     keyword_analysis: dict | None = None, score: int | None = None) -> dict:
    if score is None:
        score = calculate_seo_score(tags)

    metrics = web_vitals if web_vitals and web_vitals.get("success", True) else None
    quick_fixes = generate_quick_fixes(tags, url, metrics)

    report = {
        "url": url,
        "tags": tags,
        "score": score,
        "tag_counts": count_tags_by_status(tags),
        "quick_fixes": [fix.to_dict() for fix in quick_fixes],
        "all_good": not has_pending_fixes(quick_fixes),
    }
    if web_vitals:
        report["web_vitals"] = web_vitals
    if keyword_analysis:
        report["keyword_analysis"] = keyword_analysis
    return report


def export_to_json(report: dict, filename: str):
    """Exports the report dictionary to a JSON file."""
    with open(filename, 'w', encoding='utf-8') as f:
        json.dump(report, f, indent=4)
    logging.info(f"Full JSON report exported to {filename}")


def format_table(header, rows):
    """ Formats data into a Markdown table. """
    if not rows:
        return ""

    column_widths = [len(h) for h in header]
    for row in rows:
        for i, cell in enumerate(row):
            column_widths[i] = max(column_widths[i], len(str(cell)))

    md_table = "| " + " | ".join(header[i].ljust(column_widths[i]) for i in range(len(header))) + " |\n"
    md_table += "|-" + "-|-".join("-" * column_widths[i] for i in range(len(header))) + "-|\n"
    for row in rows:
        md_table += "| " + " | ".join(str(row[i]).ljust(column_widths[i]) for i in range(len(row))) + " |\n"

    return md_table + "\n"


def export_to_markdown(report: dict, filename: str):
    with open(filename, 'w', encoding='utf-8') as f:
        f.write(f"# SEO Report for {report['url']}\n\n")
        f.write(f"##  Overall Score: {report['score']}/100\n\n")

        counts = report["tag_counts"]
        f.write("###  Tag Status\n")
        f.write(f"- **Good:** {counts['good']}\n- **Warning:** {counts['warning']}\n- **Error:** {counts['error']}\n\n")

        f.write("###  Extracted Tags\n\n")
        f.write(format_table(["Tag", "Value"], [[name, value] for name, value in sorted(report["tags"].items())]))

        if (web_vitals := report.get("web_vitals")) and web_vitals.get("success"):
            f.write("###  Core Web Vitals\n\n")
            rows = [
                [web_vitals[key]["name"], f"{web_vitals[key]['value']:.3f}", web_vitals[key]["status"]]
                for key in ("lcp", "fid", "cls") if web_vitals.get(key)
            ]
            f.write(format_table(["Metric", "Value", "Status"], rows))

        if keywords := report.get("keyword_analysis", {}).get("top_keywords"):
            f.write("###  Top Keywords\n\n")
            f.write(format_table(["Keyword", "Frequency", "Intent"],
                                 [[k["keyword"], k["frequency"], k["intent"]] for k in keywords]))

        f.write("##  Quick Fixes\n\n")
        if report.get("all_good"):
            f.write("All Good! Your site is already optimized with no quick fixes needed.\n\n")
        for fix in report["quick_fixes"]:
            f.write(f"### {fix['title']}\n\n")
            f.write(f"- **Impact:** {fix['impact'].title()}\n")
            f.write(f"- **Difficulty:** {fix['difficulty'].title()}\n")
            f.write(f"- **Category:** {fix['category']}\n\n")
            f.write(f"{fix['description']}\n\n```html\n{fix['implementation']}\n```\n\n---\n\n")
    logging.info(f"Markdown report exported to {filename}")


def run_full_analysis(url: str, include_keywords: bool = True, api_key: str | None = None) -> dict | None:
    extracted = extract_meta_tags(url)
    if not extracted:
        return None
    tags, html = extracted

    web_vitals = core_web_vitals_test(url, api_key)
    if not web_vitals["success"]:
        logging.warning(f"Core Web Vitals unavailable: {web_vitals['error']}")

    keyword_analysis = None
    if include_keywords:
        keyword_analysis = analyze_keywords(html, tags.get("title", ""), tags.get("description", ""))

    return build_seo_report(tags, url, web_vitals=web_vitals, keyword_analysis=keyword_analysis)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    args = sys.argv[1:]

    if not args or not args[0].startswith("http"):
        print(" Error: Please provide a valid URL as the first argument.")
        sys.exit(1)

    test_url = args.pop(0)
    print(f" Starting SEO analysis for: {test_url}")

    final_report = run_full_analysis(test_url, include_keywords="--no-keywords" not in args)
    if not final_report:
        print(" Could not retrieve data to generate a report.")
        sys.exit(1)

    domain_name = urlparse(test_url).netloc.replace(".", "_")
    reports_dir = "reports"
    os.makedirs(reports_dir, exist_ok=True)
    json_filename = os.path.join(reports_dir, f"{domain_name}_seo_report.json")
    md_filename = os.path.join(reports_dir, f"{domain_name}_seo_report.md")

    export_to_json(final_report, json_filename)
    export_to_markdown(final_report, md_filename)

    print("\n---  Report Summary ---")
    print(f"Overall Score: {final_report['score']}/100")
    print("Tag Status:", final_report['tag_counts'])
    print("\nQuick Fixes:")
    pprint.pprint([fix['title'] for fix in final_report['quick_fixes']])
    print(f"\n Analysis complete! Full reports saved as {json_filename} and {md_filename}")
