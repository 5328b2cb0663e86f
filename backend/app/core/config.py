"""
应用配置
所有配置项均来自环境变量，开发环境可以放在 backend/.env 中
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """运行时配置"""

    def __init__(self, **overrides):
        # 数据库连接串，默认使用本地SQLite文件
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./canteen.db")
        self.sql_echo = _env_bool("SQL_ECHO", False)
        # 登录令牌有效期（小时）
        self.token_ttl_hours = int(os.getenv("TOKEN_TTL_HOURS", "24"))
        # 欠款宽限天数：超过该天数仍未付款的订单计为逾期
        self.dues_grace_days = int(os.getenv("DUES_GRACE_DAYS", "7"))
        # 结算时是否从钱包余额中扣款（false=仅修改付款状态）
        self.settlement_deducts_balance = _env_bool("SETTLEMENT_DEDUCTS_BALANCE", False)
        # 自动将超时备餐订单置为ready的间隔（秒），0表示不启动后台任务
        self.ready_sweep_interval_seconds = int(os.getenv("READY_SWEEP_INTERVAL_SECONDS", "0"))
        # 展示时间使用的时区偏移（分钟），默认印度标准时间 UTC+5:30
        self.display_utc_offset_minutes = int(os.getenv("DISPLAY_UTC_OFFSET_MINUTES", "330"))
        self.cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"unknown setting: {key}")
            setattr(self, key, value)


settings = Settings()


def get_settings() -> Settings:
    """FastAPI依赖：获取当前配置（测试中可以覆盖）"""
    return settings
