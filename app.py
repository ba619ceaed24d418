"""
Civic Complaint Map - Streamlit Application

Heatmap of geo-tagged complaints with place and complaint search.
Run with: streamlit run app.py
"""

import logging
import time

import pandas as pd
import streamlit as st

# ═══════════════════════════════════════════════════════════════════════════
# PAGE CONFIG
# ═══════════════════════════════════════════════════════════════════════════
st.set_page_config(
    page_title="Civic Complaint Map",
    page_icon="🗺️",
    layout="wide",
    initial_sidebar_state="expanded"
)

# Hide Streamlit chrome
st.markdown("""
<style>
    #MainMenu, header, footer, .stDeployButton {visibility: hidden; display: none;}
    .block-container { padding: 1rem 2rem; }
</style>
""", unsafe_allow_html=True)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s │ %(name)-20s │ %(levelname)-8s │ %(message)s',
    datefmt='%H:%M:%S',
)

# ═══════════════════════════════════════════════════════════════════════════
# IMPORTS
# ═══════════════════════════════════════════════════════════════════════════
from mapcore.config import get_settings
from mapcore.deck import build_deck
from mapcore.models import MapVariant, NoticeLevel
from mapcore.session import ComplaintMapSession
from mapcore.timers import ManualScheduler
from maploaders.complaint_store import get_complaint_store
from maploaders.geocoder import get_geocoder

STATUS_OPTIONS = ["all", "pending", "in_progress", "completed", "resolved"]

settings = get_settings()

# ═══════════════════════════════════════════════════════════════════════════
# SIDEBAR
# ═══════════════════════════════════════════════════════════════════════════
st.sidebar.title("🗺️ Civic Complaint Map")
st.sidebar.markdown("---")

admin_view = st.sidebar.toggle("Admin view", value=False)
variant = MapVariant.ADMIN if admin_view else MapVariant.CITIZEN
status_choice = "all"
if admin_view:
    status_choice = st.sidebar.selectbox("Status filter", STATUS_OPTIONS)
show_markers = st.sidebar.checkbox("Show markers", value=False)


def _make_session(v: MapVariant) -> ComplaintMapSession:
    # Streamlit reruns the script per interaction, so timers run on a virtual clock
    session = ComplaintMapSession(
        v,
        store=get_complaint_store(),
        geocoder=get_geocoder() if v is MapVariant.CITIZEN else None,
        scheduler=ManualScheduler(),
        settings=settings,
    )
    session.refresh_points()
    return session


key = f"map_session_{variant.value}"
if key not in st.session_state:
    st.session_state[key] = _make_session(variant)
session: ComplaintMapSession = st.session_state[key]

# Catch the virtual clock up with the wall clock since the previous run
now = time.monotonic()
session.scheduler.advance(now - st.session_state.get(f"{key}_clock", now))
st.session_state[f"{key}_clock"] = now

if st.sidebar.button("🔄 Refresh complaints"):
    session.refresh_points()
session.set_status_filter(status_choice)

# ═══════════════════════════════════════════════════════════════════════════
# STATS
# ═══════════════════════════════════════════════════════════════════════════
stats = session.stats()
cols = st.columns(5 if admin_view else 4)
cols[0].metric("Total", stats.total)
cols[1].metric("Pending", stats.pending)
cols[2].metric("In Progress", stats.in_progress)
cols[3].metric("Resolved", stats.resolved)
if admin_view:
    cols[4].metric("High Priority", stats.high_priority)

# ═══════════════════════════════════════════════════════════════════════════
# SEARCH
# ═══════════════════════════════════════════════════════════════════════════
with st.form("search_form"):
    query = st.text_input(
        "Search",
        placeholder="Search cities or complaints..." if not admin_view else "Search complaints or locations...",
    )
    submitted = st.form_submit_button("🔍 Search")

if submitted:
    st.session_state.pop(f"{key}_results", None)
    session.on_query_changed(query)
    outcome = session.submit()
    if outcome is None:
        st.warning("Please enter a location to search")
    else:
        for notice in outcome.notices:
            if notice.level is NoticeLevel.ERROR:
                st.error(f"{notice.title} {notice.message}")
            elif notice.level is NoticeLevel.WARNING:
                st.warning(f"{notice.title} {notice.message}")
            else:
                st.info(f"{notice.title} {notice.message}")
        if outcome.auto_select is not None:
            session.select(outcome.auto_select)
        elif outcome.results:
            st.session_state[f"{key}_results"] = outcome.results

results = st.session_state.get(f"{key}_results", [])
if results:
    labels = [f"{r.title} · {r.subtitle}" for r in results]
    choice = st.selectbox("Results", range(len(results)), format_func=lambda i: labels[i])
    if st.button("Go"):
        session.select(results[choice])
        st.session_state.pop(f"{key}_results", None)

# ═══════════════════════════════════════════════════════════════════════════
# MAP
# ═══════════════════════════════════════════════════════════════════════════
shapes = session.shapes()
markers = session.markers() if show_markers else None
st.pydeck_chart(build_deck(shapes, session.region, markers), height=520)
if admin_view:
    st.caption("Red=Critical priority | Orange=High priority | Size=density + priority")
else:
    st.caption("Red=Highest density | Blue/Green=Sparse")

# ═══════════════════════════════════════════════════════════════════════════
# CLUSTER DETAIL
# ═══════════════════════════════════════════════════════════════════════════
if shapes:
    st.subheader("📍 Complaint areas")
    details = [session.heatmap.describe(s) for s in shapes]
    rows = [{
        "Area": d.title,
        "Lat": round(d.latitude, 4),
        "Lon": round(d.longitude, 4),
        "Avg Priority": round(d.avg_priority) if d.avg_priority is not None else None,
        "Complaints": ", ".join(m.title for m in d.members),
    } for d in details]
    st.dataframe(pd.DataFrame(rows), width="stretch")
else:
    st.info("No complaints with coordinates to display")
