"""Input/output layer for catalogs, rosters and worklists.

Public API:
    load_catalog_csv(path)          -- catalog CSV -> list[TaskRule]
    load_schedule_csv(path)         -- roster CSV -> Schedule
    write_catalog_csv(rules, path)  -- list[TaskRule] -> catalog CSV
    write_day_summary(result, dir)  -- DistributionResult -> summary.json
    render_worklists_xlsx(...)      -- one worksheet per day
"""

from .reader import load_catalog_csv, load_schedule_csv
from .writer import write_catalog_csv, write_day_summary

__all__ = [
    "load_catalog_csv",
    "load_schedule_csv",
    "write_catalog_csv",
    "write_day_summary",
]


# Lazy import for the optional openpyxl dependency.
def render_worklists_xlsx(*args, **kwargs):
    from .xlsx import render_worklists_xlsx as _fn
    return _fn(*args, **kwargs)
