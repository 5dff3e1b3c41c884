"""Main FastAPI application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from toolgate import __version__
from toolgate.api.endpoints import router
from toolgate.utils.logging import setup_logging

setup_logging()

app = FastAPI(
    title="Toolgate",
    description=(
        "A conversational AI service whose sensitive tools run only after a human approves the call."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Chat",
            "description": (
                "Stream assistant replies. Pending tool calls are answered by sending the transcript "
                "back with an approval token in the invocation's result."
            ),
        },
        {
            "name": "Tools",
            "description": "Tools advertised to the model.",
        },
        {
            "name": "Health",
            "description": "Service health monitoring and status checks.",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-session-id", "x-vercel-ai-data-stream"],
)

app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("toolgate.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
