"""
日志配置
"""
import logging


def setup_logging(level: str = "INFO"):
    """初始化根日志器（重复调用不会重复添加handler）"""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logging.getLogger("app").setLevel(getattr(logging, level, logging.INFO))
