#!/usr/bin/env python3
"""uiforge - JSON API over the generation service."""

import os

from flask import Flask, Response, jsonify, request

from config.defaults import DEFAULTS
from core.blobs import FileBlobStore
from core.config import ConfigError
from core.records import GenerationStore, RecordNotFound
from core.service import ArtifactNotReady, GenerationService
from utils.llm import LLMError
from utils.log import configure_logging

app = Flask(__name__)
service = GenerationService(
    store=GenerationStore(os.environ.get("UIFORGE_STORE_PATH", DEFAULTS["store_path"])),
    blobs=FileBlobStore(os.environ.get("UIFORGE_BLOB_ROOT", DEFAULTS["blob_root"])),
)


def _html(text):
    return Response(text, mimetype="text/html")


@app.route("/")
def index():
    return "OK"


@app.route("/api/generate", methods=["POST"])
def api_generate():
    """Start a background generation and return its id immediately."""
    data = request.get_json(silent=True) or {}
    prompt = data.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        return jsonify({"error": "Prompt is required"}), 400

    record_id = service.start_generation(prompt)
    return jsonify({"id": record_id, "status": "pending"}), 202


@app.route("/api/generations")
def api_generations():
    status = request.args.get("status")
    try:
        records = service.list_generations(status=status or None)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify([r.to_dict() for r in records])


@app.route("/api/generations/<record_id>")
def api_generation(record_id):
    try:
        record = service.get_status(record_id)
    except RecordNotFound:
        return jsonify({"error": "Generation not found"}), 404
    return jsonify(record.to_dict())


@app.route("/api/generations/<record_id>/html")
def api_generation_html(record_id):
    try:
        html = service.get_artifact(record_id)
    except RecordNotFound:
        return jsonify({"error": "Generation not found"}), 404
    except ArtifactNotReady as e:
        return jsonify({"error": str(e)}), 409
    return _html(html)


@app.route("/generate")
def generate():
    """Blocking generation (legacy): ?prompt=... returns the page itself."""
    prompt = request.args.get("prompt", "")
    if not prompt.strip():
        return "Prompt is required", 400
    try:
        html = service.generate_sync(prompt)
    except LLMError as e:
        return jsonify({"error": str(e)}), 502
    return _html(html)


@app.route("/api/config", methods=["GET", "PUT"])
def api_config():
    if request.method == "GET":
        return jsonify(service.get_config())
    data = request.get_json(silent=True)
    try:
        return jsonify(service.set_config(data))
    except ConfigError as e:
        return jsonify({"error": str(e)}), 400


@app.route("/api/config/reset", methods=["POST"])
def api_config_reset():
    return jsonify(service.reset_config())


if __name__ == "__main__":
    configure_logging()
    port = int(os.environ.get("PORT", 5001))
    print(f"uiforge running at http://localhost:{port}")
    app.run(debug=False, port=port)
