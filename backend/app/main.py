"""
FastAPI主应用入口
"""
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import AppError
from app.core.logging_config import setup_logging
from app.db.database import engine, Base, SessionLocal
from app.middleware.request_log import RequestLogMiddleware
from app.services.sweeper import ReadySweeper
from app import models  # noqa: F401  导入所有模型以确保表被创建

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """启动时建表并启动自动出餐任务，关闭时停止任务"""
    setup_logging(settings.log_level)
    Base.metadata.create_all(bind=engine)
    sweeper = ReadySweeper(SessionLocal, settings)
    sweeper.start()
    logger.info("canteen API started")
    try:
        yield
    finally:
        sweeper.stop()


# 创建FastAPI应用
app = FastAPI(
    title="食堂订餐系统API",
    description="校园食堂点餐、备餐与欠款结算后端API",
    version="1.0.0",
    lifespan=lifespan,
)

# 配置CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """业务异常统一转换为 {"detail": ...}"""
    content = {"detail": exc.message}
    if exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """请求参数校验失败统一返回400，并带上字段级错误"""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "validation error", "errors": errors})


# 全局异常处理
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """未预期的异常：记录堆栈，只给调用方返回通用信息"""
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "internal server error"})


@app.get("/")
async def root():
    """根路径"""
    return {"message": "食堂订餐系统API", "version": "1.0.0"}


@app.get("/health")
async def health():
    """健康检查"""
    return {"status": "ok"}


# 注册API路由
from app.api import auth, food, orders, dues, admin
app.include_router(auth.router)
app.include_router(food.router)
app.include_router(orders.router)
app.include_router(dues.router)
app.include_router(admin.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
