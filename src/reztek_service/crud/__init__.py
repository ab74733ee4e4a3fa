from . import feedback_crud, maintenance_crud, principal_crud, stock_crud

__all__ = ["feedback_crud", "maintenance_crud", "principal_crud", "stock_crud"]
