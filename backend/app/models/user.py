"""
用户模型
"""
from sqlalchemy import Column, Integer, String, Boolean, Numeric, DateTime, Index, CheckConstraint
from sqlalchemy.orm import validates
from sqlalchemy.sql import func
from app.db.database import Base
from app.core.errors import ValidationError

USER_ROLES = ("student", "admin", "staff")


class User(Base):
    """用户表"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, comment="姓名")
    email = Column(String(255), nullable=False, unique=True, index=True, comment="邮箱")
    password_hash = Column(String(255), nullable=False, comment="密码哈希")
    role = Column(String(20), nullable=False, default="student", comment="角色：student=学生, admin=管理员, staff=食堂员工")
    student_id = Column(String(50), nullable=True, index=True, comment="学号")
    department = Column(String(100), nullable=True, comment="院系")
    phone = Column(String(20), nullable=True, comment="电话")
    balance = Column(Numeric(10, 2), nullable=False, default=0, comment="钱包余额")
    is_active = Column(Boolean, nullable=False, default=True, comment="是否启用")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, comment="更新时间")

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_users_balance"),
        Index("idx_users_email", "email"),
        Index("idx_users_role", "role"),
    )

    @validates("role")
    def _validate_role(self, key, value):
        if value not in USER_ROLES:
            raise ValidationError(f"role must be one of: {', '.join(USER_ROLES)}")
        return value
