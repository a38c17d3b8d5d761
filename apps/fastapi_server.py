"""
Transformer Oil Diagnostics API
===============================
FastAPI wrapper for the DGA (Duval Triangle) and breakdown-voltage pipelines.

Endpoints:
    POST /api/dga/analyze                 - computed Duval analysis
    POST /api/dga/manual                  - operator-selected faults
    POST /api/dga/upload                  - batch CSV of gas readings
    POST /api/breakdown-voltage/analyze   - six-reading BDV test
    GET  /api/history[/{entry_id}[/pdf]]  - stored reports
"""

import os
import logging
import traceback
from io import BytesIO
from typing import Dict, List, Optional
import sys

# Add project root to sys.path to allow importing from trafocore
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fastapi import FastAPI, File, UploadFile, HTTPException, Path, Query
from fastapi.responses import Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
import pandas as pd

# Load environment variables
from dotenv import load_dotenv
load_dotenv()

from apps.service import DiagnosticsService
from database.history_store import get_history_store
from trafocore.agents.recommendation import resolve
from trafocore.engines.breakdown_voltage import voltage_ranges
from trafocore.utils.errors import DiagnosticsError

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

# =============================================================================
# CONFIGURATION
# =============================================================================
DEPLOYMENT_URL = os.getenv("DEPLOYMENT_URL", "http://localhost:5001")
API_PORT = int(os.getenv("API_PORT", "5001"))
# =============================================================================

# Initialize FastAPI app
app = FastAPI(
    title="Transformer Oil Diagnostics API",
    description="Duval Triangle DGA and breakdown voltage analysis",
    version="1.0.0"
)

# Enable CORS for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

service = DiagnosticsService(get_history_store())


# =========================
# Request models
# =========================
class DGARequest(BaseModel):
    gases: Dict[str, Optional[float]] = Field(..., description="Gas concentrations in ppm, e.g. {'h2': 50}")
    header: Dict[str, str] = Field(default_factory=dict)


class ManualRequest(BaseModel):
    selections: Dict[str, Optional[str]] = Field(..., description="Fault code per triangle, e.g. {'1': 'T2'}")
    gases: Optional[Dict[str, Optional[float]]] = None
    header: Dict[str, str] = Field(default_factory=dict)


class BDVRequest(BaseModel):
    dielectricStrengths: List[float] = Field(..., description="Six breakdown readings in kV")
    transformerType: str = Field(..., description="Transformer class O, A, B or C")
    header: Dict[str, str] = Field(default_factory=dict)


def _bad_request(e: Exception):
    return HTTPException(
        status_code=400,
        detail={
            "error": "Invalid input",
            "message": getattr(e, "message", str(e)),
            "error_type": type(e).__name__,
        }
    )


def _server_error(e: Exception, what: str):
    error_trace = traceback.format_exc()
    logger.error("ERROR in %s: %s", what, error_trace)
    return HTTPException(
        status_code=500,
        detail={
            "error": "Analysis failed",
            "message": f"An error occurred during {what}",
            "error_type": type(e).__name__,
            "error_details": str(e)
        }
    )


def _not_found(entry_id: str):
    return HTTPException(
        status_code=404,
        detail={"error": "Not found", "message": f"No history entry with id {entry_id}"}
    )


@app.get("/")
async def root():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "Transformer Oil Diagnostics API",
        "version": "1.0.0",
        "deployment_url": DEPLOYMENT_URL
    }


@app.get("/api/health")
async def health_check():
    """Detailed health check with component status"""
    return {
        "status": "healthy",
        "components": {
            "duval_engine": "operational",
            "breakdown_voltage": "operational",
            "recommendations": "operational",
            "history_store": type(service.store).__name__,
        },
        "deployment_url": DEPLOYMENT_URL
    }


@app.post("/api/dga/analyze")
async def analyze_dga(request: DGARequest):
    """Run Duval Triangles 1/4/5 on one gas reading."""
    try:
        return service.run_dga(request.gases, request.header)
    except HTTPException:
        raise
    except (DiagnosticsError, ValueError) as e:
        raise _bad_request(e)
    except Exception as e:
        raise _server_error(e, "DGA analysis")


@app.post("/api/dga/manual")
async def analyze_manual(request: ManualRequest):
    """Aggregate operator-selected faults per triangle (confidence 1.0)."""
    try:
        return service.run_manual(request.selections, request.gases, request.header)
    except HTTPException:
        raise
    except (DiagnosticsError, ValueError) as e:
        raise _bad_request(e)
    except Exception as e:
        raise _server_error(e, "manual analysis")


@app.post("/api/dga/upload")
async def upload_dga_csv(file: UploadFile = File(..., description="CSV file with gas columns")):
    """
    Analyze every row of a CSV file.

    Expected CSV format:
    - Columns: h2, ch4, c2h6, c2h4, c2h2 (co, co2, o2, n2 optional)
    - Optional header columns: idTrafo, samplingDate
    """
    if not file.filename.endswith('.csv'):
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Invalid file type",
                "message": "Only CSV files are accepted",
                "received": file.filename
            }
        )

    try:
        contents = await file.read()
        return service.run_csv(BytesIO(contents))
    except HTTPException:
        raise
    except pd.errors.EmptyDataError:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Empty CSV file",
                "message": "The uploaded CSV file is empty or contains no data"
            }
        )
    except pd.errors.ParserError as e:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "CSV parsing error",
                "message": "Failed to parse CSV file. Please check the file format.",
                "details": str(e)
            }
        )
    except (DiagnosticsError, ValueError) as e:
        raise _bad_request(e)
    except Exception as e:
        raise _server_error(e, "CSV analysis")


@app.post("/api/breakdown-voltage/analyze")
async def analyze_breakdown_voltage(request: BDVRequest):
    """Average six readings and classify against the transformer class."""
    try:
        return service.run_breakdown_voltage(
            request.dielectricStrengths, request.transformerType, request.header
        )
    except HTTPException:
        raise
    except (DiagnosticsError, ValueError) as e:
        raise _bad_request(e)
    except Exception as e:
        raise _server_error(e, "breakdown voltage analysis")


@app.get("/api/breakdown-voltage/classes")
async def breakdown_voltage_classes():
    return {"classes": voltage_ranges()}


@app.get("/api/recommendations/{code}")
async def get_recommendation(code: str = Path(..., description="Fault code or BDV result")):
    record = resolve(code)
    if record is None:
        raise HTTPException(
            status_code=404,
            detail={"error": "Not found", "message": f"No recommendation for {code}"}
        )
    return record.to_dict()


@app.get("/api/history")
async def list_history(kind: Optional[str] = Query(None, description="dga or bdv"),
                       limit: int = Query(100, ge=1, le=1000),
                       result: Optional[str] = Query(None, description="good / fair / poor or a DGA severity"),
                       sort_by: str = Query("date", description="date, idTrafo, result or voltage"),
                       order: str = Query("desc", pattern="^(asc|desc)$")):
    try:
        entries = service.history(kind=kind, limit=limit, result=result,
                                  sort_by=sort_by, descending=(order == "desc"))
    except ValueError as e:
        raise _bad_request(e)
    return {"count": len(entries), "entries": entries}


@app.get("/api/history/{entry_id}")
async def get_history_entry(entry_id: str):
    entry = service.get_entry(entry_id)
    if entry is None:
        raise _not_found(entry_id)
    return entry


@app.delete("/api/history/{entry_id}")
async def delete_history_entry(entry_id: str):
    if not service.delete_entry(entry_id):
        raise _not_found(entry_id)
    return {"deleted": entry_id}


@app.get("/api/history/{entry_id}/pdf")
async def export_history_pdf(entry_id: str,
                             include_gas: bool = Query(True),
                             include_recommendations: bool = Query(True)):
    try:
        pdf = service.export_pdf(entry_id, include_gas, include_recommendations)
    except Exception as e:
        raise _server_error(e, "PDF export")
    if pdf is None:
        raise _not_found(entry_id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{entry_id}.pdf"'}
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host="0.0.0.0",  # Listen on all interfaces
        port=API_PORT,
        log_level="info"
    )
