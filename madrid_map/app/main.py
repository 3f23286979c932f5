# app/main.py
import logging

from fastapi import FastAPI
from madrid_map.app.api.endpoints import datasets, districts, facets, features, statistics

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(
    title="Madrid Street Furniture Map API",
    description="Loads Madrid traffic lights, streetlights and acoustic signals and serves filtered markers and counts."
)

app.include_router(datasets.router, prefix="/api/v1", tags=["Datasets"])
app.include_router(facets.router, prefix="/api/v1", tags=["Facets"])
app.include_router(statistics.router, prefix="/api/v1", tags=["Statistics"])
app.include_router(features.router, prefix="/api/v1", tags=["Features"])
app.include_router(districts.router, prefix="/api/v1", tags=["Districts"])

@app.get("/", tags=["Root"])
async def read_root():
    return {"message": "Welcome to the Madrid Street Furniture Map API!"}
