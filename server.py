import logging
import os
from typing import Any, Optional

from fastapi import Body, FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from showcase import settings
from showcase.backend import Backend, InvalidDocumentError, InvalidImageError

logger = logging.getLogger("showcase_backend")


def create_app(backend: Optional[Backend] = None) -> FastAPI:
    backend = backend or Backend()
    app = FastAPI(title="Lineup Showcase")
    app.state.backend = backend

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,  # "*" for dev / tunnels
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/data")
    def get_data():
        try:
            return backend.load_document()
        except Exception as e:
            logger.exception("GET /data failed")
            raise HTTPException(status_code=500, detail=str(e))

    @app.post("/data")
    def post_data(payload: Any = Body(...)):
        try:
            return backend.save_document(payload)
        except InvalidDocumentError as e:
            logger.info(f"POST /data rejected: {e}")
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            logger.exception("POST /data failed")
            raise HTTPException(status_code=500, detail=str(e))

    @app.post("/upload")
    def upload_image(image: Optional[UploadFile] = File(None)):
        if image is None:
            return JSONResponse(status_code=400, content={"error": "no file"})
        try:
            data = image.file.read()
            return backend.store_image(data)
        except InvalidImageError as e:
            logger.info(f"POST /upload rejected: {e}")
            return JSONResponse(status_code=400, content={"error": "invalid image"})
        except Exception:
            logger.exception("POST /upload failed")
            return JSONResponse(status_code=500, content={"error": "upload failed"})

    @app.post("/upload-audio")
    def upload_audio(audio: Optional[UploadFile] = File(None)):
        if audio is None:
            return JSONResponse(status_code=400, content={"error": "no file"})
        try:
            data = audio.file.read()
            return backend.store_audio(data, audio.filename or "")
        except Exception:
            logger.exception("POST /upload-audio failed")
            return JSONResponse(status_code=500, content={"error": "upload-audio failed"})

    os.makedirs(backend.uploads_dir, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=backend.uploads_dir), name="uploads")

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    logger.info(f"Backend running at http://{settings.HOST}:{settings.PORT}")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
