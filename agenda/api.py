import json
import logging
from datetime import date

from aiohttp import web

from .backup import make_backup, restore_backup
from .constants import TEXT_FIELDS
from .db import DayStore
from .errors import ImageProcessingError, InvalidBackupFormat, StorageError
from .pdf import day_pdf_filename, export_day_pdf, export_range_pdf, range_pdf_filename
from .photos import attach, detach, get_photo
from .query import insights, month_grid, month_range, search, semester_range, week_range
from .session import JournalSession
from .utils import format_month_label, from_iso_date, is_iso_date

logger = logging.getLogger("Agenda")

routes = web.RouteTableDef()

STORE_KEY = web.AppKey("store", DayStore)
SESSION_KEY = web.AppKey("session", JournalSession)


def _json_response(obj, status=200):
    return web.Response(
        status=status,
        text=json.dumps(obj, ensure_ascii=False),
        content_type="application/json",
    )


def _bad_request(msg):
    return _json_response({"error": msg}, status=400)


def _not_found(msg):
    return _json_response({"error": msg}, status=404)


def _attachment(body, content_type, filename):
    return web.Response(
        body=body,
        content_type=content_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def _day_date(request):
    day_date = request.match_info["date"]
    if not is_iso_date(day_date):
        raise web.HTTPBadRequest(
            text=json.dumps({"error": f"invalid date: {day_date}"}),
            content_type="application/json",
        )
    return day_date


def _range_params(request):
    today = date.today()
    preset = request.query.get("range", "").strip().lower()
    if preset == "week":
        return week_range(today)
    if preset == "month":
        return month_range(today)
    if preset == "semester":
        return semester_range(today)
    return (
        request.query.get("from", "").strip() or "1900-01-01",
        request.query.get("to", "").strip() or "2999-12-31",
    )


@web.middleware
async def error_middleware(request, handler):
    try:
        return await handler(request)
    except StorageError as exc:
        logger.exception("storage failure on %s %s", request.method, request.path)
        return _json_response({"error": f"storage failure: {exc}"}, status=500)


@routes.get("/agenda/health")
async def health(request):
    store = request.app[STORE_KEY]
    return _json_response({"ok": True, "db_path": store.db_path})


@routes.get("/agenda/days")
async def list_days(request):
    store = request.app[STORE_KEY]
    from_date, to_date = _range_params(request)
    q = request.query.get("q", "")
    days = search(store, q=q, from_date=from_date, to_date=to_date)
    return _json_response(
        {
            "items": [d.to_dict() for d in days],
            "total": len(days),
            "from": from_date,
            "to": to_date,
            "q": q,
        }
    )


@routes.get("/agenda/days/{date}")
async def open_day(request):
    # Visiting a date creates its record.
    session = request.app[SESSION_KEY]
    day = await session.open_day(_day_date(request))
    return _json_response(day.to_dict())


@routes.put("/agenda/days/{date}")
async def save_day(request):
    store = request.app[STORE_KEY]
    day_date = _day_date(request)
    try:
        payload = await request.json()
    except Exception:
        return _bad_request("invalid JSON body")
    if not isinstance(payload, dict):
        return _bad_request("body must be a JSON object")

    day = store.ensure_exists(day_date)
    if day.update_fields(payload):
        day.touch()
        store.put(day)
    return _json_response(day.to_dict())


@routes.patch("/agenda/days/{date}/draft")
async def draft_day(request):
    session = request.app[SESSION_KEY]
    day_date = _day_date(request)
    try:
        payload = await request.json()
    except Exception:
        return _bad_request("invalid JSON body")
    if not isinstance(payload, dict):
        return _bad_request("body must be a JSON object")

    unknown = sorted(k for k in payload if k not in TEXT_FIELDS)
    if unknown:
        return _bad_request(f"unknown field(s): {', '.join(unknown)}")

    if session.selected_date != day_date:
        await session.open_day(day_date)
    for field, value in payload.items():
        session.edit(field, value)
    return _json_response({"date": day_date, "saved": session.saved}, status=202)


@routes.post("/agenda/days/{date}/photos")
async def add_photos(request):
    store = request.app[STORE_KEY]
    day_date = _day_date(request)
    if not (request.content_type or "").lower().startswith("multipart/"):
        return _bad_request("expected multipart/form-data with one or more 'file' parts")

    form = await request.post()
    files = []
    for upload in form.getall("file", []):
        if not getattr(upload, "file", None):
            continue
        files.append((getattr(upload, "filename", "") or "", upload.file.read()))
    if not files:
        return _bad_request("no files uploaded")

    try:
        added = attach(store, day_date, files, settings=store.get_settings())
    except ImageProcessingError as exc:
        return _bad_request(str(exc))
    return _json_response({"date": day_date, "added": [p.meta() for p in added]}, status=201)


@routes.get("/agenda/days/{date}/photos/{photo_id}")
async def photo_content(request):
    store = request.app[STORE_KEY]
    photo = get_photo(store, _day_date(request), request.match_info["photo_id"])
    if photo is None:
        return _not_found("photo not found")
    return web.Response(
        body=photo.blob,
        content_type=photo.type,
        headers={"Cache-Control": "private, max-age=3600"},
    )


@routes.delete("/agenda/days/{date}/photos/{photo_id}")
async def remove_photo(request):
    store = request.app[STORE_KEY]
    removed = detach(store, _day_date(request), request.match_info["photo_id"])
    return _json_response({"removed": removed})


@routes.get("/agenda/days/{date}/pdf")
async def day_pdf(request):
    store = request.app[STORE_KEY]
    session = request.app[SESSION_KEY]
    day_date = _day_date(request)
    await session.autosave.flush()
    day = store.get(day_date)
    if day is None:
        return _not_found("day not found")
    body = export_day_pdf(day, locale=store.get_settings()["locale"])
    return _attachment(body, "application/pdf", day_pdf_filename(day_date))


@routes.get("/agenda/pdf")
async def range_pdf(request):
    store = request.app[STORE_KEY]
    session = request.app[SESSION_KEY]
    from_date, to_date = request.query.get("from", ""), request.query.get("to", "")
    if not (is_iso_date(from_date) and is_iso_date(to_date)):
        return _bad_request("'from' and 'to' must be YYYY-MM-DD")
    await session.autosave.flush()
    days = store.query_range(from_date, to_date)
    body = export_range_pdf(
        days,
        from_date,
        to_date,
        title=request.query.get("title") or None,
        locale=store.get_settings()["locale"],
    )
    return _attachment(body, "application/pdf", range_pdf_filename(from_date, to_date))


@routes.get("/agenda/insights")
async def get_insights(request):
    store = request.app[STORE_KEY]
    mode = request.query.get("mode", "week").strip().lower()
    today = date.today()
    from_date, to_date = month_range(today) if mode == "month" else week_range(today)
    settings = store.get_settings()
    data = insights(store, from_date, to_date, extra_stopwords=settings["extra_stopwords"])
    data["mode"] = "month" if mode == "month" else "week"
    data["top_keywords"] = [{"word": w, "count": c} for w, c in data["top_keywords"]]
    return _json_response(data)


@routes.get("/agenda/calendar")
async def get_calendar(request):
    store = request.app[STORE_KEY]
    session = request.app[SESSION_KEY]
    month = request.query.get("month", "").strip()
    if month:
        if not is_iso_date(f"{month}-01"):
            return _bad_request("'month' must be YYYY-MM")
        d = from_iso_date(f"{month}-01")
        session.current_month = (d.year, d.month)
    year, mon = session.current_month
    return _json_response(
        {
            "year": year,
            "month": mon,
            "label": format_month_label(year, mon, store.get_settings()["locale"]),
            "weeks": month_grid(store, year, mon, selected=session.selected_date),
        }
    )


@routes.get("/agenda/backup")
async def download_backup(request):
    store = request.app[STORE_KEY]
    session = request.app[SESSION_KEY]
    await session.autosave.flush()
    name, archive = make_backup(store)
    return _attachment(archive, "application/zip", name)


@routes.get("/agenda/backup/status")
async def backup_status(request):
    store = request.app[STORE_KEY]
    return _json_response({"days": store.count(), "photos": store.count_photos()})


@routes.post("/agenda/restore")
async def restore_upload(request):
    store = request.app[STORE_KEY]
    session = request.app[SESSION_KEY]
    content_type = (request.content_type or "").lower()
    if content_type.startswith("multipart/"):
        form = await request.post()
        upload = form.get("file")
        if not upload or not getattr(upload, "file", None):
            return _bad_request("missing backup file")
        archive = upload.file.read()
    else:
        archive = await request.read()
    if not archive:
        return _bad_request("empty backup")

    try:
        result = restore_backup(store, archive)
    except InvalidBackupFormat as exc:
        return _bad_request(f"invalid backup: {exc}")
    # Buffered edits belong to the replaced contents.
    session.discard_pending()
    return _json_response(result)


@routes.get("/agenda/settings")
async def get_settings(request):
    store = request.app[STORE_KEY]
    return _json_response(store.get_settings())


@routes.put("/agenda/settings")
async def put_settings(request):
    store = request.app[STORE_KEY]
    try:
        payload = await request.json()
    except Exception:
        return _bad_request("invalid JSON body")
    if not isinstance(payload, dict):
        return _bad_request("body must be a JSON object")
    current = store.get_settings()
    current.update(payload)
    saved = store.set_settings(current)
    request.app[SESSION_KEY].autosave.delay = saved["autosave_delay"]
    return _json_response(saved)


def create_app(store=None):
    store = store or DayStore.instance()
    app = web.Application(middlewares=[error_middleware])
    app[STORE_KEY] = store
    app[SESSION_KEY] = JournalSession(store, settings=store.get_settings())
    app.add_routes(routes)

    async def _flush_session(app):
        await app[SESSION_KEY].close()

    app.on_shutdown.append(_flush_session)
    return app
