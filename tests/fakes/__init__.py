from tests.fakes.pocketbase import FakePocketBaseClient

__all__ = ["FakePocketBaseClient"]
