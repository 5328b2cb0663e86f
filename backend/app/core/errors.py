"""
业务异常
服务层抛出这些异常，由 main.py 中注册的异常处理器统一转换成JSON响应
"""


class AppError(Exception):
    """业务异常基类"""
    status_code = 500

    def __init__(self, message: str, errors: list = None):
        super().__init__(message)
        self.message = message
        self.errors = errors


class ValidationError(AppError):
    """请求参数缺失、格式错误或超出范围"""
    status_code = 400


class ConflictError(AppError):
    """库存不足、订单状态不允许当前操作等"""
    status_code = 400


class NotFoundError(AppError):
    status_code = 404


class AuthError(AppError):
    """未登录或令牌无效"""
    status_code = 401


class PermissionDeniedError(AppError):
    """已登录但角色不符"""
    status_code = 403
