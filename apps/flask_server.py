"""
Transformer Oil Diagnostics Flask API
=====================================
Flask wrapper for the DGA and breakdown-voltage pipelines.

Endpoints:
    POST /api/dga/analyze                 - JSON {"gases": {...}, "header": {...}}
    POST /api/dga/upload                  - multipart "file" (CSV)
    POST /api/breakdown-voltage/analyze   - JSON {"dielectricStrengths": [...], "transformerType": "B"}
    GET  /api/history                     - stored reports (?kind=dga|bdv)
"""

import os
import logging
import traceback
import sys

# Add project root to sys.path to allow importing from trafocore
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from flask import Flask, request, jsonify
from flask_cors import CORS
import pandas as pd

# Load environment variables
from dotenv import load_dotenv
load_dotenv()

from apps.service import DiagnosticsService
from database.history_store import get_history_store
from trafocore.utils.errors import DiagnosticsError

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# =============================================================================
# CONFIGURATION
# =============================================================================
DEPLOYMENT_URL = os.getenv("DEPLOYMENT_URL", "http://localhost:5000")
API_PORT = int(os.getenv("API_PORT", "5000"))
# =============================================================================

# Initialize Flask app
app = Flask(__name__)
CORS(app)  # Enable CORS for frontend access

service = DiagnosticsService(get_history_store())


def _bad_request(e):
    return jsonify({
        "error": "Invalid input",
        "message": getattr(e, "message", str(e)),
        "error_type": type(e).__name__
    }), 400


def _server_error(e, what):
    error_trace = traceback.format_exc()
    logger.error("ERROR in %s: %s", what, error_trace)
    return jsonify({
        "error": "Analysis failed",
        "message": f"An error occurred during {what}",
        "error_type": type(e).__name__,
        "error_details": str(e)
    }), 500


def _json_object():
    """Request body as a dict, None when it is not a JSON object."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    return payload if isinstance(payload, dict) else None


def _not_an_object():
    return jsonify({
        "error": "Invalid input",
        "message": "Request body must be a JSON object"
    }), 400


@app.route('/')
def root():
    """Health check endpoint"""
    return jsonify({
        "status": "healthy",
        "service": "Transformer Oil Diagnostics Flask API",
        "version": "1.0.0",
        "deployment_url": DEPLOYMENT_URL
    })


@app.route('/api/health')
def health_check():
    """Detailed health check with component status"""
    return jsonify({
        "status": "healthy",
        "components": {
            "duval_engine": "operational",
            "breakdown_voltage": "operational",
            "recommendations": "operational",
            "history_store": type(service.store).__name__
        },
        "deployment_url": DEPLOYMENT_URL
    })


@app.route('/api/dga/analyze', methods=['POST'])
def analyze_dga():
    payload = _json_object()
    if payload is None:
        return _not_an_object()
    if not isinstance(payload.get("gases"), dict):
        return jsonify({
            "error": "Missing gases",
            "message": "Request body must contain a 'gases' object"
        }), 400

    try:
        return jsonify(service.run_dga(payload["gases"], payload.get("header"))), 200
    except (DiagnosticsError, ValueError) as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e, "DGA analysis")


@app.route('/api/dga/upload', methods=['POST'])
def upload_dga_csv():
    if 'file' not in request.files:
        return jsonify({
            "error": "Missing required file",
            "message": "Upload the CSV as 'file'",
            "received": list(request.files.keys())
        }), 400

    file = request.files['file']
    if not file.filename.endswith('.csv'):
        return jsonify({
            "error": "Invalid file type",
            "message": "Only CSV files are accepted",
            "received": file.filename
        }), 400

    try:
        return jsonify(service.run_csv(file.stream)), 200
    except pd.errors.EmptyDataError:
        return jsonify({
            "error": "Empty CSV file",
            "message": "The uploaded CSV file is empty or contains no data"
        }), 400
    except (DiagnosticsError, ValueError) as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e, "CSV analysis")


@app.route('/api/breakdown-voltage/analyze', methods=['POST'])
def analyze_breakdown_voltage():
    payload = _json_object()
    if payload is None:
        return _not_an_object()
    try:
        report = service.run_breakdown_voltage(
            payload.get("dielectricStrengths", []),
            payload.get("transformerType", ""),
            payload.get("header")
        )
        return jsonify(report), 200
    except (DiagnosticsError, ValueError) as e:
        return _bad_request(e)
    except Exception as e:
        return _server_error(e, "breakdown voltage analysis")


@app.route('/api/history')
def list_history():
    kind = request.args.get("kind")
    limit = request.args.get("limit", default=100, type=int)
    try:
        entries = service.history(
            kind=kind,
            limit=limit,
            result=request.args.get("result"),
            sort_by=request.args.get("sort_by", "date"),
            descending=request.args.get("order", "desc") != "asc"
        )
    except ValueError as e:
        return _bad_request(e)
    return jsonify({"count": len(entries), "entries": entries})


if __name__ == "__main__":
    # Print all registered routes for debugging
    print("Registered Routes:")
    print(app.url_map)

    app.run(
        host="0.0.0.0",
        port=API_PORT,
        debug=True,
        use_reloader=False
    )
