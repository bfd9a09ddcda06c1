from routine_app.ui_tk.tabs.catalog_tab import CatalogTab
from routine_app.ui_tk.tabs.routines_tab import CellEditor, RoutinesTab

__all__ = ["CatalogTab", "CellEditor", "RoutinesTab"]
