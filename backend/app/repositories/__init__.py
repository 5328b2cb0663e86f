"""
存储层：服务只依赖这里定义的仓储接口
SqlStore 为持久化实现，MemoryStore 为内存实现（测试替身）
"""
from app.repositories.base import Store
from app.repositories.sql import SqlStore
from app.repositories.memory import MemoryDatabase, MemoryStore

__all__ = ["Store", "SqlStore", "MemoryDatabase", "MemoryStore"]
