"""
NetLens Web Interface
Flask-based JSON API for configuration parsing and analysis.
Run with: python webapp.py
Open: http://localhost:5000
"""

import logging
import os
import sys

from flask import Flask, request, jsonify

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from core.errors import InputError, PipelineError  # pyre-ignore
from core.input_handler import InputHandler  # pyre-ignore
from core.parser_engine import all_grammars, get_grammar  # pyre-ignore
from core.pipeline import ConfigAnalyzer, analyze_batch  # pyre-ignore
from core.rule_catalog import RULE_CATALOG  # pyre-ignore

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = 10 * 1024 * 1024  # 10MB max upload
app.config['NETLENS_MAX_WORKERS'] = 4

logger = logging.getLogger("netlens.webapp")

analyzer = ConfigAnalyzer()


class RequestError(Exception):
    """Malformed request; reported as 400."""


@app.route('/api/vendors', methods=['GET'])
def get_vendors():
    """Return the registered vendor dialects."""
    return jsonify({
        "vendors": [{"name": g.name, "displayName": g.display_name} for g in all_grammars()]
    })


@app.route('/api/rules', methods=['GET'])
def get_rules():
    """Return the rule catalog."""
    return jsonify({
        "rules": [
            {
                "ruleId": r.rule_id,
                "title": r.title,
                "category": r.category,
                "type": r.finding_type,
                "severity": r.severity,
            }
            for r in RULE_CATALOG
        ]
    })


@app.route('/api/parse', methods=['POST'])
def parse():
    """Normalize an uploaded config and return the canonical model."""
    return _handle(lambda raw: {
        "fileName": raw.file_name,
        "vendor": raw.vendor,
        **_config_payload(analyzer.parse(raw)),
    })


@app.route('/api/analyze', methods=['POST'])
def analyze():
    """Normalize and analyze an uploaded config."""
    return _handle(lambda raw: analyzer.analyze(raw).to_dict())


@app.route('/api/analyze-batch', methods=['POST'])
def analyze_many():
    """Analyze several uploaded configs; failures are reported per file."""
    uploads = request.files.getlist('config_files')
    if not uploads:
        return jsonify({"error": "No files uploaded"}), 400

    vendor = request.form.get('vendor')
    try:
        _check_vendor(vendor)
    except RequestError as e:
        return jsonify({"error": str(e)}), 400

    handler = InputHandler(max_file_size=app.config['MAX_CONTENT_LENGTH'])
    raws, rejected = [], []
    for upload in uploads:
        try:
            raws.append(handler.from_text(upload.read(), upload.filename, vendor))
        except InputError as e:
            rejected.append({"fileName": upload.filename, "status": "failed",
                             "error": e.cause, "errorKind": e.kind})

    results = analyze_batch(raws, max_workers=app.config['NETLENS_MAX_WORKERS'], analyzer=analyzer)
    return jsonify({"results": [r.to_dict() for r in results] + rejected})


def _config_payload(config) -> dict:
    return {"config": config.to_dict(), "warnings": list(config.warnings)}


def _handle(action):
    try:
        raw = _read_request()
        return jsonify(action(raw))
    except RequestError as e:
        return jsonify({"error": str(e)}), 400
    except PipelineError as e:
        logger.warning(f"{e.kind} for {e.file_name}: {e.cause}")
        return jsonify({"error": e.cause, "kind": e.kind, "file": e.file_name}), 422


def _read_request():
    """Build a RawConfig from a multipart upload or a JSON body."""
    if request.is_json:
        body = request.get_json(silent=True) or {}
        text = body.get('text')
        file_name = body.get('fileName') or 'config.txt'
        vendor = body.get('vendor')
    else:
        if 'config_file' not in request.files:
            raise RequestError("No file uploaded")
        upload = request.files['config_file']
        if upload.filename == '':
            raise RequestError("No file selected")
        text = upload.read()
        file_name = upload.filename
        vendor = request.form.get('vendor')

    if text is None:
        raise RequestError("No configuration text supplied")

    _check_vendor(vendor)
    handler = InputHandler(max_file_size=app.config['MAX_CONTENT_LENGTH'])
    return handler.from_text(text, file_name, vendor)


def _check_vendor(vendor):
    if not vendor or vendor.lower() == 'auto':
        return
    try:
        get_grammar(vendor)
    except InputError as e:
        raise RequestError(e.cause)


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    print("\n" + "=" * 60)
    print("  NetLens Web Interface")
    print("  Open: http://localhost:5000")
    print("=" * 60 + "\n")
    app.run(debug=True, host='0.0.0.0', port=5000)
