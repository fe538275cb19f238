"""Drift, impact and violation analysis over completed graphs."""

from .drift import ChangePlan, DriftEntry, GraphDiff, ImpactEntry, diff_graphs, plan_changes, rank_by_impact
from .impact import (
    CriticalComponent,
    DependencyPath,
    DeploymentRisk,
    ImpactCone,
    estimate_deployment_risk,
    find_critical_components,
    find_shortest_path,
    get_all_dependents,
    get_direct_dependents,
    impact_cone,
)
from .violations import Violation, ViolationReport, collect_violations

__all__ = [
    "GraphDiff",
    "DriftEntry",
    "ImpactEntry",
    "ChangePlan",
    "diff_graphs",
    "rank_by_impact",
    "plan_changes",
    "ImpactCone",
    "DependencyPath",
    "CriticalComponent",
    "DeploymentRisk",
    "impact_cone",
    "get_direct_dependents",
    "get_all_dependents",
    "find_critical_components",
    "estimate_deployment_risk",
    "find_shortest_path",
    "Violation",
    "ViolationReport",
    "collect_violations",
]
