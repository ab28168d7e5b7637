"""Spending cap rule endpoints."""

from fastapi import APIRouter, status

from ...models import CapStatus, CreateRuleRequest, Rule, UpdateRuleRequest
from ..dependencies import RulesEngineDep

router = APIRouter(prefix="/rules", tags=["rules"])


@router.get("", response_model=list[Rule])
def list_rules(rules: RulesEngineDep) -> list[Rule]:
    return rules.get_rules()


@router.post("", response_model=Rule, status_code=status.HTTP_201_CREATED)
def create_rule(request: CreateRuleRequest, rules: RulesEngineDep) -> Rule:
    return rules.create_rule(request)


@router.get("/status/{merchant_id}", response_model=CapStatus)
def cap_status(merchant_id: int, rules: RulesEngineDep) -> CapStatus:
    """Month-to-date spend of a merchant against its effective cap."""
    return rules.check_cap_status(merchant_id)


@router.get("/{rule_id}", response_model=Rule)
def get_rule(rule_id: int, rules: RulesEngineDep) -> Rule:
    return rules.get_rule(rule_id)


@router.put("/{rule_id}")
def update_rule(rule_id: int, request: UpdateRuleRequest, rules: RulesEngineDep) -> dict:
    rules.update_rule(rule_id, request)
    return {"success": True}


@router.delete("/{rule_id}")
def delete_rule(rule_id: int, rules: RulesEngineDep) -> dict:
    rules.delete_rule(rule_id)
    return {"success": True}
