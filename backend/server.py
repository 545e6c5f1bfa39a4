"""
Local development server for the Offshore Passage Planner.

Route planning is forwarded to the Lambda handler; polar and sail lookups
are served directly.
Run with: py -m uvicorn server:app --reload --port 8000
"""

import json
import logging
from dataclasses import asdict
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from models import SailingMode
from boat_polars import LAGOON_440_POLAR, find_optimal_vmg, get_polar_performance
from sail_advisor import build_sail_label, recommend_sail_configuration
from serializers import sail_configuration_to_dict
from lambda_function import lambda_handler

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Offshore Passage Planner")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.post("/plan-route")
async def plan_route(request: Request):
    """Forward request to Lambda handler."""
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse(status_code=400, content={"error": "Request body must be JSON"})

    # Simulate Lambda event format
    event = {
        "httpMethod": "POST",
        "body": json.dumps(body)
    }

    result = lambda_handler(event, None)

    return JSONResponse(
        status_code=result["statusCode"],
        content=json.loads(result["body"])
    )


@app.get("/polars/lagoon440/speed")
async def polar_speed(tws: float, twa: float, config: Optional[str] = None):
    """Interpolated boat speed and VMG from the Lagoon 440 polar."""
    try:
        speed, vmg = get_polar_performance(LAGOON_440_POLAR, tws, twa, config)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "tws": tws,
        "twa": twa,
        "sailConfig": LAGOON_440_POLAR.get_config(config).sail_config,
        "speed": round(speed, 2),
        "vmg": round(vmg, 2),
    }


@app.get("/polars/lagoon440/optimal-vmg")
async def optimal_vmg(tws: float, config: Optional[str] = None):
    try:
        result = find_optimal_vmg(LAGOON_440_POLAR, tws, config)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"tws": tws, "upwind": asdict(result.upwind), "downwind": asdict(result.downwind)}


@app.get("/sail-recommendation")
async def sail_recommendation(windSpeed: float, twa: float, mode: SailingMode = SailingMode.MIXED):
    try:
        rec = recommend_sail_configuration(windSpeed, twa, mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "configuration": sail_configuration_to_dict(rec.configuration),
        "label": build_sail_label(rec.configuration),
        "expectedSpeed": round(rec.expected_speed, 1),
        "description": rec.description,
        "confidence": rec.confidence,
        "speedMultiplier": rec.speed_multiplier,
        "sailConfig": rec.sail_config_name,
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
