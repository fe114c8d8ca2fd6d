"""
Flask-based frontend for the CRI Assessment Platform.

Lists the CRI profile diagnostics by tier and tag, lets the user answer
each one with free text or a categorical label, attach evidence files, and
generate an assessment report that can be downloaded as CSV, PDF or Excel.

To run the app locally, install the package and execute:

    python frontend/app.py

The server will start on http://0.0.0.0:8000 by default.
"""

from datetime import date
from typing import Optional

from flask import (
    Blueprint,
    Flask,
    Response,
    abort,
    current_app,
    make_response,
    redirect,
    render_template,
    request,
    session,
    url_for,
)
from werkzeug.utils import secure_filename

from cri_assessment.assessment import attach_evidence, generate_report, record_response, set_notify_email
from cri_assessment.catalog import TIERS, Catalog, load_catalog
from cri_assessment.config import get_settings
from cri_assessment.export_reports import (
    CSV_FILENAME,
    EXCEL_FILENAME,
    PDF_FILENAME,
    to_csv,
    to_excel,
    to_pdf,
)
from cri_assessment.logging import get_logger
from cri_assessment.report_builder import build_report, rows_to_dataframe, summarize_report
from cri_assessment.response_sync import ResponseSyncer
from cri_assessment.score_chart import score_chart_base64
from cri_assessment.session_manager import AssessmentSession, SessionManager
from cri_assessment.supabase_client import get_supabase
from cri_assessment.view import filter_and_page

logger = get_logger(__name__)

SESSION_KEY = "cri_session_id"
EXTENSION_KEY = "cri_assessment"

bp = Blueprint("assessment", __name__)


def create_app(
    catalog: Optional[Catalog] = None,
    session_manager: Optional[SessionManager] = None,
    syncer: Optional[ResponseSyncer] = None,
) -> Flask:
    """Build the Flask application.

    Settings and the Supabase client are resolved eagerly so a missing
    backend configuration stops the app before it serves anything.
    """
    settings = get_settings()
    get_supabase()

    app = Flask(__name__)
    app.secret_key = settings.FLASK_SECRET_KEY
    app.config['SESSION_PERMANENT'] = True
    app.config['PERMANENT_SESSION_LIFETIME'] = settings.SESSION_TIMEOUT_HOURS * 3600

    app.extensions[EXTENSION_KEY] = {
        "catalog": catalog if catalog is not None else load_catalog(),
        "session_manager": session_manager or SessionManager(
            storage_dir=settings.SESSION_DIR,
            session_timeout_hours=settings.SESSION_TIMEOUT_HOURS,
        ),
        "syncer": syncer or ResponseSyncer(debounce_seconds=settings.SAVE_DEBOUNCE_SECONDS),
        "settings": settings,
    }
    app.register_blueprint(bp)
    return app


def _ext(name: str):
    return current_app.extensions[EXTENSION_KEY][name]


def get_or_create_session() -> AssessmentSession:
    """Get or create an assessment session for the current user"""
    manager: SessionManager = _ext("session_manager")
    session_id = session.get(SESSION_KEY)

    if session_id:
        user_session = manager.get_session(session_id)
        if user_session:
            return user_session

    user_agent = request.headers.get('User-Agent', 'Unknown')
    user_session = manager.create_session(user_agent=user_agent)
    session[SESSION_KEY] = user_session.session_id
    session.permanent = True
    return user_session


def save_session_data(user_session: AssessmentSession) -> None:
    _ext("session_manager").save_session(user_session)


def _back_to_assessment(anchor: Optional[str] = None):
    return redirect(url_for("assessment.assessment", _anchor=anchor))


@bp.route("/")
def home():
    return redirect(url_for("assessment.assessment"))


@bp.route("/assessment")
def assessment() -> str:
    """
    Paginated list of diagnostics. Query arguments ``tier`` (repeatable),
    ``tag`` and ``page`` update the filter state kept in the session.
    """
    user_session = get_or_create_session()
    catalog: Catalog = _ext("catalog")
    settings = _ext("settings")

    if request.args.get("apply_filters"):
        user_session.selected_tiers = request.args.getlist("tier", type=int)
        user_session.selected_tag = request.args.get("tag") or None
        user_session.current_page = 1
    if "page" in request.args:
        user_session.current_page = request.args.get("page", 1, type=int)

    view = filter_and_page(
        catalog,
        user_session.selected_tiers,
        user_session.selected_tag,
        user_session.current_page,
        settings.PAGE_SIZE,
    )
    user_session.current_page = view.page

    _ext("syncer").flush_due(user_session)
    save_session_data(user_session)

    return render_template(
        "assessment.html",
        view=view,
        catalog=catalog,
        tiers=TIERS,
        session_data=user_session,
        progress=user_session.get_progress(len(catalog)),
        pending_count=len(user_session.pending_saves),
    )


@bp.route("/respond/<diagnostic_id>", methods=["POST"])
def respond(diagnostic_id: str):
    """Record a categorical answer (``choice``) or free-text ``response``."""
    user_session = get_or_create_session()
    if "choice" in request.form:
        value = request.form["choice"]
    else:
        value = request.form.get("response", "")
    try:
        record_response(user_session, _ext("catalog"), diagnostic_id, value)
    except ValueError:
        abort(404)
    _ext("syncer").flush_due(user_session)
    save_session_data(user_session)
    return _back_to_assessment(diagnostic_id)


@bp.route("/evidence/<diagnostic_id>", methods=["POST"])
def upload_evidence(diagnostic_id: str):
    """Upload a supporting evidence file for a diagnostic."""
    user_session = get_or_create_session()
    uploaded = request.files.get("evidence")
    if uploaded and uploaded.filename:
        try:
            attach_evidence(
                user_session,
                _ext("catalog"),
                diagnostic_id,
                secure_filename(uploaded.filename),
                uploaded.read(),
                content_type=uploaded.mimetype,
                max_bytes=_ext("settings").MAX_UPLOAD_BYTES,
            )
        except ValueError:
            abort(404)
        save_session_data(user_session)
    return _back_to_assessment(diagnostic_id)


@bp.route("/save", methods=["POST"])
def save_progress():
    """Persist every pending response now."""
    user_session = get_or_create_session()
    _ext("syncer").flush(user_session, force=True)
    save_session_data(user_session)
    return _back_to_assessment()


@bp.route("/notify", methods=["POST"])
def notify_email():
    user_session = get_or_create_session()
    if not set_notify_email(user_session, request.form.get("email")):
        logger.info("Ignoring malformed notification address")
    save_session_data(user_session)
    return _back_to_assessment()


@bp.route("/report", methods=["GET", "POST"])
def report() -> str:
    """
    Assessment report. POST generates (saves pending answers, archives the
    report and sends the notification email); GET only previews.
    """
    user_session = get_or_create_session()
    catalog: Catalog = _ext("catalog")

    if request.method == "POST":
        generated = generate_report(user_session, catalog, syncer=_ext("syncer"))
        rows, summary = generated.rows, generated.summary
        save_session_data(user_session)
    else:
        rows = build_report(catalog, user_session)
        summary = summarize_report(rows)

    table_html = rows_to_dataframe(rows).to_html(
        classes="table table-striped",
        index=False,
        escape=True,
        border=0,
    )
    return render_template(
        "report.html",
        rows=rows,
        summary=summary,
        table_html=table_html,
        chart_data=score_chart_base64(rows) if rows else None,
        session_data=user_session,
        generated=request.method == "POST",
    )


def _current_rows():
    return build_report(_ext("catalog"), get_or_create_session())


@bp.route("/report/csv")
def export_csv():
    """Export the report as CSV."""
    response = make_response(to_csv(_current_rows()))
    response.headers['Content-Type'] = 'text/csv; charset=utf-8'
    response.headers['Content-Disposition'] = f'attachment; filename={CSV_FILENAME}'
    return response


@bp.route("/report/pdf")
def export_pdf():
    """Export the report as PDF."""
    pdf_data = to_pdf(_current_rows(), title=_ext("settings").REPORT_TITLE)
    return Response(
        pdf_data,
        mimetype='application/pdf',
        headers={'Content-Disposition': f'attachment; filename={PDF_FILENAME}'}
    )


@bp.route("/report/xlsx")
def export_excel():
    """Export the report as Excel."""
    excel_data = to_excel(_current_rows(), title=_ext("settings").REPORT_TITLE)
    return Response(
        excel_data,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        headers={'Content-Disposition': f'attachment; filename={EXCEL_FILENAME}'}
    )


@bp.route("/session/export")
def export_session():
    """Export current session answers as JSON"""
    user_session = get_or_create_session()
    export_data = _ext("session_manager").export_session(user_session)

    response = make_response(export_data)
    response.headers['Content-Type'] = 'application/json'
    response.headers['Content-Disposition'] = (
        f'attachment; filename=cri_assessment_session_{date.today().isoformat()}.json'
    )
    return response


@bp.route("/session/import", methods=["POST"])
def import_session():
    """Import answers from an exported JSON file into a new session"""
    uploaded = request.files.get("session_file")
    if not uploaded or uploaded.filename == "":
        return _back_to_assessment()

    try:
        import_data = uploaded.read().decode("utf-8")
    except UnicodeDecodeError:
        return "Session file must be UTF-8 JSON", 400

    imported = _ext("session_manager").import_session(import_data)
    if imported is None:
        return "Failed to import session. Please check the file format.", 400

    session[SESSION_KEY] = imported.session_id
    session.permanent = True
    return _back_to_assessment()


@bp.route("/session/clear")
def clear_session():
    """Clear current session and start a new one"""
    session_id = session.get(SESSION_KEY)
    if session_id:
        _ext("session_manager").delete_session(session_id)
    session.clear()
    return _back_to_assessment()


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=8000, debug=True)
