from src.infrastructure.contracts.in_memory import InMemoryContractRepository
from src.infrastructure.contracts.postgres import PostgresContractRepository

__all__ = ["InMemoryContractRepository", "PostgresContractRepository"]
