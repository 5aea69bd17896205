import json
import logging
from pathlib import Path
from typing import List, Optional

from fastapi import FastAPI, UploadFile, File, HTTPException, Request, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from pydantic import ValidationError as BodyValidationError

import config
from database import PostStore, PostNotFound, ValidationError
from models import PostCreate, PostUpdate, UploadResult
from uploads import Uploader, UploadCapabilityMissing, UploadIOFailure

logger = logging.getLogger(__name__)


async def json_fields(request: Request) -> dict:
    """JSON object body of the request; empty or non-JSON bodies carry no fields"""
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type != "application/json" and not content_type.endswith("+json"):
        return {}
    body = await request.body()
    if not body.strip():
        return {}
    try:
        data = json.loads(body)
    except ValueError as e:
        raise RequestValidationError(
            [{"type": "json_invalid", "loc": ("body",), "msg": "JSON decode error", "input": {}, "ctx": {"error": str(e)}}]
        )
    return data if isinstance(data, dict) else {}


def parse_fields(model, fields: dict) -> BaseModel:
    try:
        return model.model_validate(fields)
    except BodyValidationError as e:
        raise RequestValidationError(e.errors(include_url=False))


def create_app(store: PostStore, uploader: Optional[Uploader], public_dir: Path) -> FastAPI:
    """Build the blog API around an injected store and optional upload support"""
    app = FastAPI(title="Flatfile Blog")
    public_dir = Path(public_dir)

    @app.on_event("startup")
    def startup():
        # StorageUnavailable propagates and stops the server
        store.initialize()
        store.load()
        public_dir.mkdir(parents=True, exist_ok=True)
        if uploader is not None:
            uploader.ensure_directory()
        else:
            logger.warning("Uploads are disabled; POST /upload will fail")
        logger.info("Serving static files from %s", public_dir)

    # ============================================
    # ERROR RESPONSES
    # ============================================

    @app.exception_handler(PostNotFound)
    async def post_not_found(request: Request, exc: PostNotFound):
        return JSONResponse(status_code=404, content={"error": "Post not found"})

    @app.exception_handler(ValidationError)
    async def validation_failed(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(UploadCapabilityMissing)
    async def uploads_missing(request: Request, exc: UploadCapabilityMissing):
        return JSONResponse(status_code=500, content={"error": "upload support is not available"})

    @app.exception_handler(UploadIOFailure)
    async def upload_failed(request: Request, exc: UploadIOFailure):
        return JSONResponse(status_code=500, content={"error": "upload failed", "detail": str(exc)})

    # ============================================
    # POSTS API
    # ============================================

    @app.get("/posts")
    async def list_posts():
        return [post.to_dict() for post in store.list()]

    @app.get("/posts/{post_id}")
    async def get_post(post_id: str):
        return store.get(post_id).to_dict()

    @app.post("/posts")
    async def create_post(fields: dict = Depends(json_fields)):
        return store.create(parse_fields(PostCreate, fields)).to_dict()

    @app.put("/posts/{post_id}")
    async def update_post(post_id: str, fields: dict = Depends(json_fields)):
        return store.update(post_id, parse_fields(PostUpdate, fields)).to_dict()

    @app.delete("/posts/{post_id}")
    async def delete_post(post_id: str):
        return store.delete(post_id)

    # ============================================
    # UPLOADS
    # ============================================

    @app.post("/upload", response_model=UploadResult)
    async def upload_files(files: List[UploadFile] = File(default=[])):
        if uploader is None:
            raise UploadCapabilityMissing()

        saved = []
        for file in files:
            saved.append(await uploader.save(file))
        return UploadResult(files=saved)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "posts_count": len(store.list())}

    # ============================================
    # STATIC SHELL
    # ============================================

    def page(name: str) -> FileResponse:
        path = public_dir / name
        if path.is_file():
            return FileResponse(path)
        raise HTTPException(status_code=404, detail=f"{name} not found")

    @app.get("/", response_class=FileResponse)
    async def serve_index():
        return page("index.html")

    @app.get("/index.html", response_class=FileResponse)
    async def serve_index_html():
        return page("index.html")

    @app.get("/blog.html", response_class=FileResponse)
    async def serve_blog():
        return page("blog.html")

    # Mounted last so the API routes above take precedence
    app.mount("/", StaticFiles(directory=public_dir, check_dir=False), name="public")

    return app


logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = create_app(
    store=PostStore(config.POSTS_FILE),
    uploader=Uploader(config.UPLOADS_DIR) if config.UPLOADS_ENABLED else None,
    public_dir=config.PUBLIC_DIR,
)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
