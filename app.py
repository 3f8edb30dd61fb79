# app.py (Streamlit dashboard)
import asyncio
import json

import pandas as pd
import streamlit as st

import storage
from analyzer import build_seo_report, calculate_seo_score, generate_comparison_categories, run_full_analysis
from scraper import extract_meta_tags, parse_meta_tags
from utils.async_helper import fetch_pages_async
from utils.fix_session import FixSession

from Features.ClarityAnalysisTest import clarity_analysis_test
from Features.KeywordAnalysisTest import analyze_keywords
from Features.QuickFixes import QuickFix, has_pending_fixes

FIXES_PER_PAGE = 3
STATUS_COLORS = {"good": "🟢", "needs-improvement": "🟠", "poor": "🔴"}
IMPACT_COLORS = {"high": "🔴", "medium": "🟠", "low": "🔵"}
DIFFICULTY_DOTS = {"easy": "●○○", "medium": "●●○", "hard": "●●●"}

st.set_page_config(
    page_title="SEO Quick Fixes",
    page_icon="🔎",
    layout="wide"
)

storage.init_db()


@st.cache_resource
def _seeded():
    db = storage.SessionLocal()
    try:
        return storage.seed_plans(db)
    finally:
        db.close()


_seeded()

st.title("🔎 SEO Quick Fixes")
st.caption("Meta tag analysis, Core Web Vitals and ready-to-paste fixes for any page.")

col1, col2 = st.columns([3, 1])
with col1:
    url_to_analyze = st.text_input("Enter the URL to analyze", placeholder="https://example.com")
    competitors_input = st.text_input("Competitor URLs (optional, comma separated, max 3)")
with col2:
    user_id = st.text_input("User ID", value="demo-user")
    include_keywords = st.checkbox("Run keyword analysis", value=True)
    export_json = st.checkbox("Show raw JSON download", value=True)

for key, default in (("report", None), ("comparison", None), ("clarity", None), ("fix_session", None), ("fix_page", 0)):
    if key not in st.session_state:
        st.session_state[key] = default


def _remaining_usage(uid: str) -> int:
    db = storage.SessionLocal()
    try:
        if not storage.get_user(db, uid):
            storage.create_user(db, user_id=uid, email=f"{uid}@local")
        return storage.check_user_subscription(db, uid)["remaining_usage"]
    finally:
        db.close()


def _record_usage(uid: str, report: dict):
    db = storage.SessionLocal()
    try:
        storage.create_seo_analysis(db, url=report["url"], tags=report["tags"], score=report["score"], user_id=uid)
        storage.increment_user_usage(db, uid)
    finally:
        db.close()


def _compare(primary_report: dict, competitor_urls: list) -> dict:
    competitors = []
    for url, html in asyncio.run(fetch_pages_async(competitor_urls)):
        if html is None:
            st.warning(f"Could not fetch competitor {url}")
            continue
        tags = parse_meta_tags(html)
        competitors.append(build_seo_report(tags, url, score=calculate_seo_score(tags)))
    return {
        "primary": primary_report,
        "competitors": competitors,
        "categories": generate_comparison_categories(primary_report, competitors),
    }


if st.button("Analyze Website", type="primary"):
    if not url_to_analyze:
        st.warning("Please enter a URL to analyze.")
    elif _remaining_usage(user_id) <= 0:
        st.error("You've reached your monthly limit of SEO analyses. Upgrade your plan to continue.")
    else:
        with st.spinner("Running SEO analysis... This may take a moment."):
            report = run_full_analysis(url_to_analyze, include_keywords=include_keywords)
            if report:
                _record_usage(user_id, report)
                st.session_state.report = report
                st.session_state.fix_session = FixSession()
                st.session_state.fix_page = 0
                st.session_state.clarity = None
                competitor_urls = [c.strip() for c in competitors_input.split(",") if c.strip()][:3]
                st.session_state.comparison = _compare(report, competitor_urls) if competitor_urls else None
            else:
                st.session_state.report = None
                st.error("Could not fetch data from the URL. Please check the URL and try again.")

if st.session_state.report:
    report = st.session_state.report
    tags = report["tags"]

    st.divider()
    st.header("📊 SEO Report Summary")

    counts = report["tag_counts"]
    summary_cols = st.columns(4)
    summary_cols[0].metric(label="SEO Score", value=f"{report['score']}/100")
    summary_cols[1].metric(label="Good Tags", value=counts["good"])
    summary_cols[2].metric(label="Warnings", value=counts["warning"])
    summary_cols[3].metric(label="Errors", value=counts["error"])

    left, right = st.columns(2)
    with left:
        st.subheader("Google Preview")
        st.markdown(f"**{tags.get('title', 'No title')[:60]}**")
        st.caption(report["url"])
        st.write(tags.get("description", "No meta description")[:160])
    with right:
        st.subheader("Social Card Preview")
        if image := tags.get("og:image"):
            st.image(image, width=320)
        st.markdown(f"**{tags.get('og:title') or tags.get('title', 'No title')}**")
        st.write(tags.get("og:description") or tags.get("description", ""))

    st.subheader("Core Web Vitals")
    web_vitals = report.get("web_vitals") or {}
    if web_vitals.get("success"):
        vitals_cols = st.columns(3)
        for col, key in zip(vitals_cols, ("lcp", "fid", "cls")):
            if metric := web_vitals.get(key):
                col.metric(label=metric["name"], value=f"{metric['value']:.2f}",
                           delta=f"{STATUS_COLORS[metric['status']]} {metric['status']}", delta_color="off")
                for tip in metric["improvement_tips"]:
                    col.caption(f"- {tip}")
    else:
        st.info(f"Core Web Vitals not available. {web_vitals.get('error') or ''}")

    if keyword_analysis := report.get("keyword_analysis"):
        st.subheader("Keyword Analysis")
        kw_left, kw_right = st.columns(2)
        kw_left.dataframe(pd.DataFrame(keyword_analysis["top_keywords"]), use_container_width=True)
        kw_right.dataframe(pd.DataFrame(keyword_analysis["suggestions"]), use_container_width=True)

    st.subheader("Communication Clarity")
    if st.button("Analyze Communication Clarity"):
        with st.spinner("Asking the model how clearly this page communicates..."):
            extracted = extract_meta_tags(report["url"])
            html = extracted[1] if extracted else None
            keywords = report.get("keyword_analysis") or (analyze_keywords(html) if html else None)
            st.session_state.clarity = clarity_analysis_test(report["url"], html, keywords)

    if clarity := st.session_state.clarity:
        if clarity.get("warning"):
            st.warning(clarity["warning"])
        analysis = clarity["clarity_analysis"]
        purpose = analysis["perceivedPurpose"]
        assessment = analysis["clarityAssessment"]
        suggestions = analysis["improvementSuggestions"]

        clarity_left, clarity_right = st.columns([1, 2])
        clarity_left.metric(label="Clarity Score", value=f"{assessment['score']}/10")
        clarity_left.caption(f"Confidence: {purpose['confidenceLevel']} · Priority: {suggestions['priority']}")
        clarity_right.markdown(f"**Perceived purpose:** {purpose['description']}")
        clarity_right.write(assessment["overallVerdict"])
        clarity_right.caption(", ".join(purpose["keyTerms"]))

        strengths_col, weaknesses_col = st.columns(2)
        strengths_col.markdown("**Strengths**\n" + "\n".join(f"- {s}" for s in assessment["strengths"]))
        weaknesses_col.markdown("**Weaknesses**\n" + "\n".join(f"- {w}" for w in assessment["weaknesses"]))
        with st.expander("Improvement suggestions"):
            for area in ("copywriting", "structure", "emphasis"):
                st.markdown(f"**{area.title()}**")
                for tip in suggestions[area]:
                    st.write(f"- {tip}")

    st.subheader("🪄 Quick Fixes")
    fixes = [QuickFix(**fix) for fix in report["quick_fixes"]]
    session: FixSession = st.session_state.fix_session

    if not has_pending_fixes(fixes):
        st.success("All Good! Your site is already optimized with no quick fixes needed.")

    page_count = max(1, -(-len(fixes) // FIXES_PER_PAGE))
    page = min(st.session_state.fix_page, page_count - 1)
    nav_prev, nav_label, nav_next = st.columns([1, 2, 1])
    if nav_prev.button("◀ Previous", disabled=page == 0):
        st.session_state.fix_page = page - 1
        st.rerun()
    nav_label.caption(f"Page {page + 1} of {page_count}")
    if nav_next.button("Next ▶", disabled=page >= page_count - 1):
        st.session_state.fix_page = page + 1
        st.rerun()

    fix_cols = st.columns(FIXES_PER_PAGE)
    for col, fix in zip(fix_cols, fixes[page * FIXES_PER_PAGE:(page + 1) * FIXES_PER_PAGE]):
        with col:
            st.markdown(f"**{fix.title}**")
            st.caption(f"{IMPACT_COLORS[fix.impact]} {fix.impact.title()} Impact · Difficulty {DIFFICULTY_DOTS[fix.difficulty]}")
            st.write(fix.description)

            implementation = session.implementations.get(fix.id, fix.implementation)
            if fix.editable and not session.is_applied(fix.id):
                if not session.editing or session.editing["fix_id"] != fix.id:
                    if st.button("Edit", key=f"edit-{fix.id}"):
                        session.start_edit(fix)
                        st.rerun()
                else:
                    edited = st.text_area("Text", value=session.editing["text"], key=f"text-{fix.id}")
                    session.update_edit(edited)
                    if st.button("Done", key=f"done-{fix.id}"):
                        session.implementations[fix.id] = session.finish_edit(fix)
                        st.rerun()

            st.code(implementation, language="html")

            if session.is_applied(fix.id):
                st.success("Applied")
            elif st.button("Apply Fix", key=f"apply-{fix.id}"):
                with st.spinner("Applying fix..."):
                    asyncio.run(session.apply_fix(fix, implementation))
                st.toast(f"{fix.title} has been implemented on your site.")
                st.rerun()

    if comparison := st.session_state.comparison:
        st.subheader("Competitor Comparison")
        sites = [comparison["primary"]["url"]] + [c["url"] for c in comparison["competitors"]]
        df = pd.DataFrame(
            {category["name"]: category["scores"] for category in comparison["categories"]},
            index=sites
        )
        st.dataframe(df, use_container_width=True)
        for category in comparison["categories"]:
            st.write(f"**{category['name']}** leader: {sites[category['leader']]}")

    if export_json:
        st.download_button("Download full report JSON", data=json.dumps(report, indent=2),
                           file_name="seo_report.json", mime="application/json")

    st.divider()
    with st.expander("Show Full Raw Data JSON"):
        st.json(report)
