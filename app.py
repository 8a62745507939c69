"""
Come Follow Me - Last Minute Lesson Plans
Flask backend: Sunday + class -> AI lesson slides -> on-screen deck / PPTX
"""

from flask import Flask, render_template, jsonify, request, send_file, session
import os
import io
import uuid
import asyncio
import logging
import threading
from datetime import date

from dotenv import load_dotenv

from presentation.deck_state import DEFAULT_MAX_SESSIONS, GenerationStatus, LessonSession, SessionStore
from presentation.errors import ExportError, InvalidTransitionError
from presentation.lesson_generator import LessonGenerator
from presentation.models import AUDIENCE_OPTIONS, DEFAULT_AUDIENCE, Audience
from ppt_generator import PPTGenerator
from utils import format_date, get_upcoming_sundays, setup_logger

load_dotenv()

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = os.getenv("FLASK_SECRET_KEY") or os.urandom(24)

# Swappable in tests
app.config["GENERATOR_FACTORY"] = LessonGenerator
app.config["PPT_GENERATOR_FACTORY"] = PPTGenerator
app.config["GENERATE_IN_BACKGROUND"] = True

PPTX_MIMETYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

sessions = SessionStore(int(os.getenv("LESSON_MAX_SESSIONS", DEFAULT_MAX_SESSIONS)))


def _current_session(create: bool = False) -> LessonSession:
    """
    LessonSession for this browser

    Only starting a generation registers a session. Other requests from a
    browser the store does not know get a throwaway idle session.
    """
    if create:
        if "sid" not in session:
            session["sid"] = uuid.uuid4().hex
        return sessions.get(session["sid"])
    return sessions.find(session.get("sid")) or LessonSession()


def _run_generation(lesson_session: LessonSession, generator):
    asyncio.run(lesson_session.run(generator))


# ============================================================================
# ROUTES
# ============================================================================

@app.route('/')
def index():
    """Serve whichever screen the session is on"""
    lesson_session = _current_session()

    if lesson_session.status is GenerationStatus.COMPLETE:
        return render_template('viewer.html', state=lesson_session.viewer.to_dict())

    sundays = get_upcoming_sundays(4)
    return render_template(
        'index.html',
        state=lesson_session.to_dict(),
        sundays=[{"value": d.isoformat(), "label": format_date(d)} for d in sundays],
        audience_options=AUDIENCE_OPTIONS,
        default_audience=DEFAULT_AUDIENCE.value,
    )


@app.route('/ping')
def ping():
    """Health check endpoint"""
    return jsonify({"status": "ok", "message": "I'm alive!"})


# ============================================================================
# API ENDPOINTS
# ============================================================================

@app.route('/api/generate', methods=['POST'])
def generate_lesson():
    """
    Start generating a lesson plan
    Body:
        - date: ISO date of the Sunday (YYYY-MM-DD)
        - audience: One of the Audience values
    """
    data = request.get_json(silent=True) or request.form

    try:
        day = date.fromisoformat(data.get('date', ''))
    except (TypeError, ValueError):
        return jsonify({"success": False, "error": "A valid date is required"}), 400

    try:
        audience = Audience(data.get('audience', DEFAULT_AUDIENCE.value))
    except ValueError:
        return jsonify({"success": False, "error": "Unknown class selection"}), 400

    lesson_session = _current_session(create=True)
    try:
        date_str = lesson_session.start(day, audience)
    except InvalidTransitionError as e:
        return jsonify({"success": False, "error": str(e)}), 409

    logger.info(f"Generating {audience.value} lesson for {date_str}")
    generator = app.config["GENERATOR_FACTORY"]()

    if app.config["GENERATE_IN_BACKGROUND"]:
        worker = threading.Thread(target=_run_generation, args=(lesson_session, generator), daemon=True)
        worker.start()
    else:
        _run_generation(lesson_session, generator)

    return jsonify({"success": True, **lesson_session.to_dict()}), 202


@app.route('/api/status')
def get_status():
    """Poll the generation status"""
    return jsonify({"success": True, **_current_session().to_dict()})


@app.route('/api/reset', methods=['POST'])
def reset_lesson():
    """Exit the deck or retry after an error"""
    lesson_session = _current_session()
    try:
        lesson_session.reset()
    except InvalidTransitionError as e:
        return jsonify({"success": False, "error": str(e)}), 409
    return jsonify({"success": True, **lesson_session.to_dict()})


def _viewer_or_error():
    lesson_session = _current_session()
    if lesson_session.viewer is None:
        return None, (jsonify({"success": False, "error": "No lesson is being presented"}), 409)
    return lesson_session.viewer, None


@app.route('/api/viewer')
def get_viewer():
    viewer, error = _viewer_or_error()
    if error:
        return error
    return jsonify({"success": True, "viewer": viewer.to_dict()})


@app.route('/api/viewer/key', methods=['POST'])
def viewer_key():
    """Keyboard navigation: ArrowRight/Space, ArrowLeft, Escape"""
    viewer, error = _viewer_or_error()
    if error:
        return error
    data = request.get_json(silent=True) or {}
    changed = viewer.handle_key(data.get('key', ''))
    return jsonify({"success": True, "changed": changed, "viewer": viewer.to_dict()})


@app.route('/api/viewer/goto', methods=['POST'])
def viewer_goto():
    """Jump straight to a slide (progress dots)"""
    viewer, error = _viewer_or_error()
    if error:
        return error
    data = request.get_json(silent=True) or {}
    try:
        viewer.navigator.go_to(int(data.get('index')))
    except (TypeError, ValueError, IndexError) as e:
        return jsonify({"success": False, "error": str(e)}), 400
    return jsonify({"success": True, "viewer": viewer.to_dict()})


@app.route('/api/viewer/sources', methods=['POST'])
def viewer_sources():
    """Open or close the sources overlay"""
    viewer, error = _viewer_or_error()
    if error:
        return error
    data = request.get_json(silent=True) or {}
    if data.get('open', True):
        if not viewer.open_sources():
            return jsonify({"success": False, "error": "This lesson has no sources"}), 400
    else:
        viewer.close_sources()
    return jsonify({"success": True, "viewer": viewer.to_dict()})


@app.route('/api/download')
def download_pptx():
    """Export the current lesson as a PPTX file"""
    viewer, error = _viewer_or_error()
    if error:
        return error

    lesson_plan = viewer.lesson_plan
    ppt_gen = app.config["PPT_GENERATOR_FACTORY"]()
    try:
        data = ppt_gen.generate_ppt(lesson_plan)
    except ExportError as e:
        return jsonify({"success": False, "error": str(e)}), 502

    return send_file(
        io.BytesIO(data),
        mimetype=PPTX_MIMETYPE,
        as_attachment=True,
        download_name=ppt_gen.get_filename(lesson_plan)
    )


# ============================================================================
# RUN
# ============================================================================

if __name__ == '__main__':
    setup_logger()
    port = int(os.getenv("PORT", 5000))

    print("\n" + "=" * 60)
    print("🌱 COME FOLLOW ME - LAST MINUTE LESSON PLANS")
    print("=" * 60)
    print(f"\n🌐 Open: http://localhost:{port}")
    if not os.getenv("API_KEY"):
        print("⚠️ API_KEY is not set - lesson generation will fail until it is")
    print("\n" + "=" * 60 + "\n")

    app.run(debug=True, host='0.0.0.0', port=port)
