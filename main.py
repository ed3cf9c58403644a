from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from herbal_retail.config import APP_NAME, APP_VERSION, current_env
from herbal_retail.database import engine
from herbal_retail.models.commission import Base as CommissionBase
from herbal_retail.models.sales import Base as SalesBase
from herbal_retail.models.target import Base as TargetBase
from herbal_retail.models.team import Base as TeamBase
from herbal_retail.routes import target, commission, excel_upload, report
from herbal_retail.utils.logger import app_logger

MODEL_BASES = [TeamBase, SalesBase, TargetBase, CommissionBase]


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 启动事件
    app_logger.info(f"Starting {APP_NAME} {APP_VERSION} ({current_env})")

    yield  # 应用程序运行期间

    # 关闭事件
    app_logger.info("Disposing database engine")
    await engine.dispose()


app = FastAPI(title=APP_NAME, version=APP_VERSION, lifespan=lifespan)
# 配置CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(target.router, prefix="/target")
app.include_router(commission.router, prefix="/commission")
app.include_router(excel_upload.router, prefix="/excel_upload")
app.include_router(report.router, prefix="/report")


@app.get("/health")
async def health_check():
    """健康检查端点"""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "environment": current_env,
            "timestamp": datetime.now().isoformat()
        }
    except SQLAlchemyError as e:
        app_logger.error(f"Health check failed: {e}")
        return {
            "status": "unhealthy",
            "error": str(e),
            "timestamp": datetime.now().isoformat()
        }


async def init_db():
    """
    初始化数据库并创建所有表
    """
    async with engine.begin() as conn:
        for base in MODEL_BASES:
            await conn.run_sync(base.metadata.create_all)

    app_logger.info("Database tables created successfully!")


if __name__ == "__main__":
    # asyncio.run(init_db())
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8002, log_level="info")
