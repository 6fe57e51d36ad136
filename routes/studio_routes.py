"""
Studio Blueprint — the recipe image generator page and its JSON API.

Routes:
    GET  /                                  — Form + gallery page.
    GET  /api/state                         — Current studio state.
    POST /api/generate                      — Run a full generation from the form.
    POST /api/regenerate/<image_id>         — Regenerate one image in place.
    GET  /api/export                        — Download every image as a zip.
    GET  /api/images/<image_id>/download    — Download a single image.

Every controller call is handed to the studio's LoopRunner so state is only
touched from its event loop. Routes read the snapshot returned from the loop,
never controller.state directly.
"""
from __future__ import annotations

import io
import logging

from flask import Blueprint, abort, current_app, jsonify, render_template, request, send_file

from services.export_service import image_filename
from services.studio_state import ErrorKind
from utils.image_helpers import from_data_uri

logger = logging.getLogger(__name__)

studio_bp = Blueprint("studio", __name__)

BUSY_MESSAGE = "Another operation is already in progress. Please wait for it to finish."
FORM_FIELDS = ("keyword", "ingredients", "steps")


def _studio():
    """Returns (controller, runner) registered by create_app()."""
    studio = current_app.extensions["studio"]
    return studio["controller"], studio["runner"]


# --- Coroutines run on the studio loop ---

async def _snapshot(controller):
    return controller.state.snapshot()


async def _generate_from_form(controller, keyword: str, ingredients: str, steps: str):
    controller.update_recipe(keyword=keyword, ingredients_text=ingredients, steps_text=steps)
    accepted = await controller.run_generation()
    return accepted, controller.state.snapshot()


async def _regenerate(controller, image_id: str):
    """Returns (known, accepted, snapshot)."""
    if controller.get_image(image_id) is None:
        return False, False, controller.state.snapshot()
    accepted = await controller.regenerate(image_id)
    return True, accepted, controller.state.snapshot()


async def _export(controller):
    archive = await controller.export_all()
    return archive, controller.state.snapshot()


def _read_form(payload) -> tuple[dict | None, str | None]:
    """Missing or null fields read as empty; anything else that is not a string is rejected."""
    if not isinstance(payload, dict):
        return None, "Request body must be a JSON object."

    form = {name: payload.get(name) or "" for name in FORM_FIELDS}
    invalid = [name for name, value in form.items() if not isinstance(value, str)]
    if invalid:
        return None, f"Field(s) must be text: {', '.join(invalid)}"
    return form, None


# ---------------------------------------------------------------------------
# HTML Page
# ---------------------------------------------------------------------------

@studio_bp.route("/")
def index() -> str:
    """Renders the form and whatever images the current session has generated."""
    controller, runner = _studio()
    return render_template("index.html", state=runner.run(_snapshot(controller)))


# ---------------------------------------------------------------------------
# API: State
# ---------------------------------------------------------------------------

@studio_bp.route("/api/state")
def get_state():
    controller, runner = _studio()
    return jsonify(success=True, state=runner.run(_snapshot(controller)).to_dict())


# ---------------------------------------------------------------------------
# API: Generate
# ---------------------------------------------------------------------------

@studio_bp.route("/api/generate", methods=["POST"])
def generate():
    """
    Accepts JSON body: {"keyword": str, "ingredients": str, "steps": str}.
    Steps are newline-delimited; blank lines are ignored.

    Returns:
        200 with the images on success, 400 if the form is incomplete or
        malformed, 409 if another operation is running, 502 if the provider failed.
    """
    controller, runner = _studio()

    form, error = _read_form(request.get_json(silent=True) or {})
    if error:
        return jsonify(success=False, error=error), 400

    accepted, state = runner.run(_generate_from_form(
        controller,
        keyword=form["keyword"],
        ingredients=form["ingredients"],
        steps=form["steps"],
    ))

    if not accepted:
        return jsonify(success=False, error=BUSY_MESSAGE), 409
    if state.error_kind is ErrorKind.VALIDATION:
        return jsonify(success=False, error=state.last_error), 400
    if state.error_kind:
        return jsonify(success=False, error=state.last_error), 502

    return jsonify(success=True, images=[img.to_dict() for img in state.images])


# ---------------------------------------------------------------------------
# API: Regenerate
# ---------------------------------------------------------------------------

@studio_bp.route("/api/regenerate/<image_id>", methods=["POST"])
def regenerate(image_id: str):
    """
    Regenerates one image. Only one regeneration may run at a time; a request
    that arrives while another is in flight is rejected with 409 and changes
    nothing. Unknown ids are 404.
    """
    controller, runner = _studio()

    known, accepted, state = runner.run(_regenerate(controller, image_id))
    if not known:
        return jsonify(success=False, error=f"Unknown image: {image_id}"), 404
    if not accepted:
        return jsonify(success=False, error=BUSY_MESSAGE), 409
    if state.error_kind is ErrorKind.REGENERATION:
        return jsonify(success=False, error=state.last_error), 502

    return jsonify(success=True, image=state.find_image(image_id).to_dict())


# ---------------------------------------------------------------------------
# API: Downloads
# ---------------------------------------------------------------------------

@studio_bp.route("/api/export")
def export_zip():
    """Streams every generated image as '<keyword>_images.zip'."""
    controller, runner = _studio()

    archive, state = runner.run(_export(controller))
    if archive is None:
        if state.error_kind is ErrorKind.EXPORT:
            return jsonify(success=False, error=state.last_error), 500
        if not state.images:
            return jsonify(success=False, error="No images to export"), 404
        return jsonify(success=False, error=BUSY_MESSAGE), 409

    return send_file(
        io.BytesIO(archive.content),
        mimetype="application/zip",
        as_attachment=True,
        download_name=archive.filename,
    )


@studio_bp.route("/api/images/<image_id>/download")
def download_image(image_id: str):
    """Streams one image as '<slugged title>.jpg'."""
    controller, runner = _studio()
    image = runner.run(_snapshot(controller)).find_image(image_id)
    if image is None:
        abort(404)

    return send_file(
        io.BytesIO(from_data_uri(image.image_url)),
        mimetype="image/jpeg",
        as_attachment=True,
        download_name=image_filename(image),
    )
