from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel


class RuleStats(BaseModel):
    total: int = 0
    active: int = 0
    routes: int = 0
    inactive: int = 0


class RuleList(BaseModel):
    rules: List[Dict[str, Any]] = []
    stats: RuleStats
    facets: Dict[str, List[str]] = {}
    total: int = 0
    page: int = 1
    total_pages: int = 1
    error: Optional[str] = None


class RuleForm(BaseModel):
    name: str = ""
    action: str = "pull"
    picking_type_id: Union[int, str] = ""
    location_src_id: Union[int, str] = ""
    location_dest_id: Union[int, str] = ""
    procure_method: str = "make_to_stock"
    auto: str = "manual"
    route_id: Union[int, str] = ""
    group_propagation_option: str = "none"
    propagate_carrier: bool = False
    delay: Union[int, float, str] = ""


class RuleFormOptions(BaseModel):
    form: RuleForm
    routes: List[Dict[str, Any]] = []
    picking_types: List[Dict[str, Any]] = []
    locations: List[Dict[str, Any]] = []


class RuleSaved(BaseModel):
    success: bool = True
    id: Optional[int] = None
    message: str = ""
