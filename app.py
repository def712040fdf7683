"""Streamlit dashboard for the job monitor."""
from __future__ import annotations

import streamlit as st

from gigscout.config import PROFILES_PATH, ensure_dirs, load_settings
from gigscout.log import get_logger
from gigscout.models import CATEGORIES, PROFILE_LEVELS, Job, ValidationError
from gigscout.monitor import JobMonitor
from gigscout.remote import RemoteScorer
from gigscout.service import JobService, ProfileService
from gigscout.store import JobQuery, ProfileStore

log = get_logger(__name__)

# ── Helpers ──────────────────────────────────────────────────────────────


@st.cache_resource
def _monitor() -> JobMonitor:
    """One monitor per server process, shared by every browser session."""
    ensure_dirs()
    return JobMonitor.from_settings(load_settings())


def _job_service() -> JobService:
    m = _monitor()
    return JobService(m.store, m.orchestrator, ProfileStore(PROFILES_PATH))


def _profile_service() -> ProfileService:
    return ProfileService(ProfileStore(PROFILES_PATH))


def _jobs_frame(jobs: list[Job]):
    import pandas as pd

    rows = [
        {
            "external_id": j.external_id,
            "title": j.title,
            "score": j.score,
            "category": j.category,
            "budget": j.budget.describe() if j.budget else "",
            "skills": ", ".join(j.skills),
            "location": j.location or "",
            "applied": j.applied,
            "saved": j.saved,
            "created_at": j.created_at,
            "url": j.url,
        }
        for j in jobs
    ]
    return pd.DataFrame(rows)


def _job_label(job: Job) -> str:
    return f"{job.score:.1f}  {job.title}  ({job.external_id})"


# ── Page: Jobs ───────────────────────────────────────────────────────────


def page_jobs() -> None:
    st.header("Jobs")
    service = _job_service()

    c1, c2, c3, c4 = st.columns(4)
    with c1:
        category = st.selectbox("Category", ["any", *CATEGORIES])
    with c2:
        min_score = st.slider("Min score", 0.0, 10.0, 0.0, 0.5)
    with c3:
        keyword = st.text_input("Keyword")
    with c4:
        order_by = st.selectbox("Order by", ["created_at", "score"])

    c1, c2, c3 = st.columns(3)
    with c1:
        skills = st.text_input("Skills (comma separated)")
    with c2:
        only = st.radio("Show", ["all", "applied", "saved"], horizontal=True)
    with c3:
        limit = st.number_input("Limit", 10, 500, 50)

    query = JobQuery(
        category=None if category == "any" else category,
        min_score=min_score or None,
        keyword=keyword.strip() or None,
        skills=[s.strip() for s in skills.split(",") if s.strip()],
        applied=True if only == "applied" else None,
        saved=True if only == "saved" else None,
        order_by=order_by,
        limit=int(limit),
    )
    jobs = service.get_jobs(query)
    if not jobs:
        st.info("No jobs match. Run a fetch from the **Monitor** page.")
        return

    st.dataframe(
        _jobs_frame(jobs),
        use_container_width=True,
        column_config={
            "url": st.column_config.LinkColumn("Link"),
            "score": st.column_config.ProgressColumn("Score", min_value=0, max_value=10, format="%.1f"),
        },
        hide_index=True,
    )

    st.divider()
    st.subheader("Update a job")
    by_id = {j.external_id: j for j in jobs}
    selected = st.selectbox("Job", list(by_id), format_func=lambda k: _job_label(by_id[k]))
    c1, c2, c3, c4 = st.columns(4)
    if c1.button("Mark applied", use_container_width=True):
        service.mark_applied(selected)
        st.rerun()
    if c2.button("Save", use_container_width=True):
        service.mark_saved(selected)
        st.rerun()
    if c3.button("Rescore", use_container_width=True):
        service.rescore([selected])
        st.rerun()
    if c4.button("Delete", use_container_width=True):
        service.delete_job(selected)
        st.rerun()

    with st.expander("Score breakdown"):
        breakdown = service.orchestrator.breakdown(by_id[selected])
        st.json(breakdown.factors() | {"final": breakdown.final})


# ── Page: Match ──────────────────────────────────────────────────────────


def page_match() -> None:
    st.header("Profile Match")
    service = _job_service()

    jobs = service.get_jobs(JobQuery(order_by="score", limit=200))
    if not jobs:
        st.info("No stored jobs yet.")
        return
    if not service.profiles.list_profiles():
        st.warning("No profiles configured — add one on the **Profiles** page.")
        return

    by_id = {j.external_id: j for j in jobs}
    selected = st.selectbox("Job", list(by_id), format_func=lambda k: _job_label(by_id[k]))
    use_remote = st.checkbox(
        "Ask the remote model", value=False, disabled=not service.orchestrator.remote_enabled,
    )

    best = service.best_match(selected, use_remote=use_remote)
    if best is None or best.profile is None:
        st.info("No matching profile.")
        return

    c1, c2 = st.columns(2)
    c1.metric("Best profile", best.profile.name)
    c2.metric("Match score", f"{best.score:.1f}/10")
    if best.reasoning:
        st.caption(best.reasoning)

    import pandas as pd

    ranked = service.ranked_matches(selected)
    df = pd.DataFrame([{"profile": r.profile.name, "score": r.score, **r.breakdown} for r in ranked])
    st.dataframe(df, use_container_width=True, hide_index=True)


# ── Page: Profiles ───────────────────────────────────────────────────────


def page_profiles() -> None:
    st.header("Profiles")
    service = _profile_service()

    stats = service.stats()
    c1, c2 = st.columns(2)
    c1.metric("Profiles", stats["total"])
    c2.metric("Average rate", f"${stats['average_rate']:.0f}/hr")

    for profile in service.list():
        with st.expander(f"{profile.name} — {profile.experience.level}, ${profile.hourly_rate:.0f}/hr"):
            st.write(profile.description)
            st.markdown("**Skills:** " + ", ".join(profile.skills))
            if profile.categories:
                st.markdown("**Categories:** " + ", ".join(profile.categories))
            if st.button("Delete", key=f"del_{profile.name}"):
                service.delete(profile.name)
                st.rerun()

    st.divider()
    st.subheader("Add profile")
    with st.form("profile_form", clear_on_submit=True):
        name = st.text_input("Name")
        description = st.text_area("Description")
        skills = st.text_input("Skills (comma separated)")
        c1, c2, c3 = st.columns(3)
        with c1:
            years = st.number_input("Years", 0, 50, 3)
        with c2:
            level = st.selectbox("Level", PROFILE_LEVELS)
        with c3:
            rate = st.number_input("Hourly rate ($)", 0.0, 1000.0, 40.0)
        categories = st.multiselect("Categories", CATEGORIES)
        if st.form_submit_button("Save profile", type="primary"):
            try:
                service.create({
                    "name": name.strip(),
                    "description": description.strip(),
                    "skills": [s.strip() for s in skills.split(",") if s.strip()],
                    "experience": {"years": int(years), "level": level},
                    "hourly_rate": float(rate),
                    "categories": categories,
                })
            except ValidationError as exc:
                st.error(str(exc))
            else:
                st.success(f"Saved {name}")
                st.rerun()


# ── Page: Monitor ────────────────────────────────────────────────────────


def page_monitor() -> None:
    st.header("Monitor")
    monitor = _monitor()
    service = _job_service()

    c1, c2, c3 = st.columns(3)
    c1.metric("Source", monitor.source.name)
    c2.metric("Remote scoring", "On" if monitor.orchestrator.remote_enabled else "Off")
    c3.metric("Background loop", "Running" if monitor.is_running else "Stopped")

    c1, c2 = st.columns(2)
    if c1.button("Fetch now", type="primary", use_container_width=True):
        with st.status("Fetching jobs…", expanded=True) as sw:
            summary = monitor.run_cycle()
            if summary is None:
                sw.update(label="A fetch is already running", state="error")
            elif summary.get("error"):
                sw.update(label="Fetch failed", state="error")
                st.error(summary["error"])
            else:
                st.session_state["last_cycle"] = summary
                sw.update(label="Fetch complete!", state="complete")
    if monitor.is_running:
        if c2.button("Stop loop", use_container_width=True):
            monitor.stop(timeout=5)
            st.rerun()
    elif c2.button("Start loop", use_container_width=True):
        if monitor.start(run_immediately=False):
            st.rerun()
        st.error("Another job monitor is already running (dashboard or run_monitor.py).")

    summary = st.session_state.get("last_cycle")
    if summary:
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Fetched", summary["fetched"])
        c2.metric("New", summary["processed"])
        c3.metric("Seen", summary["skipped"])
        c4.metric("Failed", summary["failed"])

    st.divider()
    stats = service.job_stats()
    cache = monitor.cache.stats()
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Stored jobs", stats["total"])
    c2.metric("Average score", f"{stats['average_score']:.1f}")
    c3.metric("Last 24h", stats["recent"])
    c4.metric("Cached ids", cache["size"])
    if cache["last_fetch"]:
        st.caption(f"Last fetch: {cache['last_fetch']:%Y-%m-%d %H:%M UTC}")

    if stats["by_category"]:
        import pandas as pd

        c1, c2 = st.columns(2)
        with c1:
            st.markdown("**By category**")
            st.bar_chart(pd.Series(stats["by_category"], name="jobs"))
        with c2:
            st.markdown("**By score**")
            st.bar_chart(pd.Series(stats["by_score"], name="jobs"))

    if st.button("Clear dedup cache"):
        monitor.cache.clear()
        st.rerun()

    with st.expander("Remote model"):
        remote = monitor.orchestrator.remote
        st.json(monitor.orchestrator.stats())
        if isinstance(remote, RemoteScorer) and remote.available and st.button("Test connection"):
            if remote.test_connection():
                st.success("Remote model reachable")
            else:
                st.error("Remote model unreachable, see logs")


# ── Main ─────────────────────────────────────────────────────────────────


pages = [
    st.Page(page_jobs, title="Jobs", icon="📋", url_path="jobs", default=True),
    st.Page(page_match, title="Match", icon="🎯", url_path="match"),
    st.Page(page_profiles, title="Profiles", icon="👤", url_path="profiles"),
    st.Page(page_monitor, title="Monitor", icon="🚀", url_path="monitor"),
]

nav = st.navigation(pages)
nav.run()
