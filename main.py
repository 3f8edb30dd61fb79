import logging
import os
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, HttpUrl
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import storage
from analyzer import build_seo_report, calculate_seo_score, generate_comparison_categories
from scraper import extract_meta_tags, parse_meta_tags
from storage import get_db
from utils.async_helper import fetch_pages_async
from utils.fix_session import FixSessionRegistry

from Features.ClarityAnalysisTest import clarity_analysis_test
from Features.CoreWebVitalsTest import core_web_vitals_test
from Features.KeywordAnalysisTest import analyze_keywords
from Features.QuickFixes import QuickFix, generate_quick_fixes, has_pending_fixes

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

MAX_COMPETITORS = 3


@asynccontextmanager
async def lifespan(app: FastAPI):
    storage.init_db()
    db = storage.SessionLocal()
    try:
        storage.seed_plans(db)
    finally:
        db.close()
    yield


app = FastAPI(title="SEO Quick Fixes API", lifespan=lifespan)
fix_sessions = FixSessionRegistry()


class AnalyzeRequest(BaseModel):
    url: HttpUrl
    user_id: str
    include_keywords: bool = False


class UserRequest(BaseModel):
    id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None


class QuickFixRequest(BaseModel):
    tags: dict[str, str] = {}
    url: str
    metrics: dict | None = None


class ApplyFixRequest(BaseModel):
    fix: QuickFix
    implementation: str | None = None


class EditFixRequest(BaseModel):
    fix: QuickFix


class EditTextRequest(BaseModel):
    text: str


class URLRequest(BaseModel):
    url: HttpUrl
    api_key: str | None = None


class ClarityRequest(BaseModel):
    url: HttpUrl


class PlanChangeRequest(BaseModel):
    plan_type: str


def _report_from_analysis(analysis: storage.SeoAnalysis) -> dict:
    return build_seo_report(analysis.tags, analysis.url, score=analysis.score)


def _save_analysis(db: Session, url: str, tags: dict, score: int, user_id: str | None = None):
    try:
        analysis = storage.create_seo_analysis(db, url=url, tags=tags, score=score, user_id=user_id)
        logging.info(f"SEO analysis saved successfully, ID: {analysis.id}")
    except SQLAlchemyError:
        db.rollback()
        logging.exception(f"Error saving SEO analysis for {url}")


@app.get("/")
def root():
    return {"message": "SEO Quick Fixes API. Use POST /analyze, GET /compare or POST /quick-fixes."}


@app.post("/users")
def register_user(req: UserRequest, db: Session = Depends(get_db)):
    user = storage.create_user(db, user_id=req.id, email=req.email, first_name=req.first_name, last_name=req.last_name)
    return user.to_dict()


@app.get("/plans")
def list_plans(db: Session = Depends(get_db)):
    return [plan.to_dict() for plan in storage.get_all_plans(db)]


@app.get("/user/{user_id}/subscription")
def user_subscription(user_id: str, db: Session = Depends(get_db)):
    user = storage.get_user(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    subscription = storage.check_user_subscription(db, user_id)
    plan = storage.get_plan_by_type(db, user.current_plan or "free")
    logging.info(f"Subscription check for user {user_id}: plan {user.current_plan}, remaining {subscription['remaining_usage']}")
    return {
        "current_plan": user.current_plan,
        "plan_name": plan.name if plan else "Free",
        "is_subscribed": subscription["is_subscribed"],
        "remaining_usage": subscription["remaining_usage"],
        "monthly_usage": user.monthly_usage,
        "monthly_limit": plan.monthly_limit if plan else storage.FREE_PLAN_LIMIT,
    }


@app.put("/user/{user_id}/plan")
def change_plan(user_id: str, req: PlanChangeRequest, db: Session = Depends(get_db)):
    if not storage.get_plan_by_type(db, req.plan_type):
        raise HTTPException(status_code=400, detail=f"Unknown plan: {req.plan_type}")
    user = storage.update_user_plan(db, user_id, req.plan_type)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    logging.info(f"User {user_id} moved to plan {req.plan_type}")
    return user.to_dict()


@app.get("/user/{user_id}/analyses")
def user_analyses(user_id: str, limit: int = 5, db: Session = Depends(get_db)):
    return [analysis.to_dict() for analysis in storage.get_seo_analyses_by_user(db, user_id, limit=limit)]


@app.post("/user/reset-usage")
def reset_usage(db: Session = Depends(get_db)):
    reset = storage.reset_monthly_usage(db)
    return {"success": True, "reset_users": reset}


@app.post("/analyze")
async def analyze(req: AnalyzeRequest, db: Session = Depends(get_db)):
    url = str(req.url)
    user = storage.get_user(db, req.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if storage.check_user_subscription(db, req.user_id)["remaining_usage"] <= 0:
        raise HTTPException(status_code=403, detail={
            "message": "You've reached your monthly limit of SEO analyses",
            "plan": user.current_plan,
            "upgrade": True,
        })

    logging.info(f"Analysis started for: {url}")

    if existing := storage.get_seo_analysis_by_url(db, url):
        logging.info(f"Found existing SEO analysis for URL {url}, reusing")
        _save_analysis(db, url, existing.tags, existing.score, user_id=req.user_id)
        storage.increment_user_usage(db, req.user_id)
        return _report_from_analysis(existing)

    try:
        extracted = await run_in_threadpool(extract_meta_tags, url)
        if not extracted:
            raise HTTPException(status_code=502, detail=f"Failed to fetch URL: {url}")
        tags, html = extracted

        score = calculate_seo_score(tags)
        _save_analysis(db, url, tags, score, user_id=req.user_id)
        updated = storage.increment_user_usage(db, req.user_id)
        logging.info(f"User usage incremented: {updated.monthly_usage}/{updated.current_plan}")

        web_vitals = await run_in_threadpool(core_web_vitals_test, url)
        if not web_vitals["success"]:
            logging.warning(f"Core Web Vitals unavailable for {url}: {web_vitals['error']}")

        keyword_analysis = None
        if req.include_keywords:
            keyword_analysis = analyze_keywords(html, tags.get("title", ""), tags.get("description", ""))

        logging.info(f"Analysis complete for {url}!")
        return build_seo_report(tags, url, web_vitals=web_vitals, keyword_analysis=keyword_analysis, score=score)

    except HTTPException:
        raise
    except Exception as e:
        logging.exception("An internal error occurred during analysis.")
        raise HTTPException(status_code=500, detail=f"An internal error occurred: {e}")


async def _analyze_for_comparison(db: Session, urls: list[str]) -> list[dict | None]:
    reports = {}
    to_fetch = []
    for url in urls:
        if existing := storage.get_seo_analysis_by_url(db, url):
            reports[url] = _report_from_analysis(existing)
        else:
            to_fetch.append(url)

    for url, html in await fetch_pages_async(to_fetch):
        if html is None:
            reports[url] = None
            continue
        tags = parse_meta_tags(html)
        score = calculate_seo_score(tags)
        _save_analysis(db, url, tags, score)
        reports[url] = build_seo_report(tags, url, score=score)

    return [reports.get(url) for url in urls]


@app.get("/compare")
async def compare(primary: HttpUrl, competitors: str = "", db: Session = Depends(get_db)):
    competitor_urls = [c.strip() for c in competitors.split(",") if c.strip()][:MAX_COMPETITORS]
    primary_url = str(primary)

    reports = await _analyze_for_comparison(db, [primary_url, *competitor_urls])
    primary_report, competitor_reports = reports[0], reports[1:]
    if not primary_report:
        raise HTTPException(status_code=502, detail=f"Failed to fetch URL: {primary_url}")

    valid_competitors = [report for report in competitor_reports if report]
    return {
        "primary": primary_report,
        "competitors": valid_competitors,
        "categories": generate_comparison_categories(primary_report, valid_competitors),
    }


@app.get("/recent")
def recent(limit: int = 10, db: Session = Depends(get_db)):
    return [analysis.to_dict() for analysis in storage.get_recent_seo_analyses(db, limit=limit)]


@app.post("/quick-fixes")
def quick_fixes(req: QuickFixRequest):
    fixes = generate_quick_fixes(req.tags, req.url, req.metrics)
    return {"fixes": [fix.to_dict() for fix in fixes], "all_good": not has_pending_fixes(fixes)}


@app.post("/sessions/{session_id}/apply")
async def apply_fix(session_id: str, req: ApplyFixRequest):
    session = fix_sessions.get(session_id)
    applied = await session.apply_fix(req.fix, req.implementation)
    return {"applied": applied, "applied_fixes": sorted(session.applied)}


@app.post("/sessions/{session_id}/edit")
def start_edit(session_id: str, req: EditFixRequest):
    try:
        text = fix_sessions.get(session_id).start_edit(req.fix)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"fix_id": req.fix.id, "text": text}


def _existing_session(session_id: str):
    session = fix_sessions.find(session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Fix session not found")
    return session


@app.put("/sessions/{session_id}/edit")
def update_edit(session_id: str, req: EditTextRequest):
    session = _existing_session(session_id)
    try:
        session.update_edit(req.text)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session.editing


@app.post("/sessions/{session_id}/edit/finish")
def finish_edit(session_id: str, req: EditFixRequest):
    try:
        implementation = _existing_session(session_id).finish_edit(req.fix)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"fix_id": req.fix.id, "implementation": implementation}


@app.delete("/sessions/{session_id}")
def close_session(session_id: str):
    if not fix_sessions.drop(session_id):
        raise HTTPException(status_code=404, detail="Fix session not found")
    logging.info(f"Fix session closed: {session_id}")
    return {"success": True}


@app.post("/check/core_web_vitals")
async def check_core_web_vitals(req: URLRequest):
    return await run_in_threadpool(core_web_vitals_test, str(req.url), req.api_key)


@app.post("/check/keywords")
async def check_keywords(req: URLRequest):
    extracted = await run_in_threadpool(extract_meta_tags, str(req.url))
    if not extracted:
        raise HTTPException(status_code=502, detail=f"Failed to fetch URL: {req.url}")
    tags, html = extracted
    return analyze_keywords(html, tags.get("title", ""), tags.get("description", ""))


@app.post("/check/clarity")
async def check_clarity(req: ClarityRequest):
    url = str(req.url)
    logging.info(f"Fetching HTML content from {url} for clarity analysis")
    extracted = await run_in_threadpool(extract_meta_tags, url)
    if not extracted:
        logging.warning(f"Clarity analysis for {url} fell back: page could not be fetched")
        return clarity_analysis_test(url, None)

    tags, html = extracted
    keywords = analyze_keywords(html, tags.get("title", ""), tags.get("description", ""))
    return await run_in_threadpool(clarity_analysis_test, url, html, keywords)


#directly running the main.py file
if __name__ == "__main__":
    uvicorn.run("main:app", host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
