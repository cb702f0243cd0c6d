"""
Manager hierarchy helpers.

The hierarchy is an index {employee_id: manager_id or None}. It must stay a
forest: assigning a manager that is the employee itself or one of its
(transitive) reports is rejected.
"""
from typing import Dict, List, Mapping, Optional


def manager_chain(index: Mapping[int, Optional[int]], employee_id: int) -> List[int]:
    """Managers above employee_id, nearest first. Stops if the index already has a loop."""
    chain: List[int] = []
    seen = {employee_id}
    current = index.get(employee_id)
    while current is not None and current not in seen:
        chain.append(current)
        seen.add(current)
        current = index.get(current)
    return chain


def would_create_cycle(
    index: Mapping[int, Optional[int]],
    employee_id: int,
    new_manager_id: Optional[int],
) -> bool:
    """
    True if setting employee_id's manager to new_manager_id creates a cycle.

    A cycle exists when the new manager is the employee itself or when the
    employee appears in the new manager's upward chain.
    """
    if new_manager_id is None:
        return False
    if new_manager_id == employee_id:
        return True
    return employee_id in manager_chain(index, new_manager_id)


def direct_reports(index: Mapping[int, Optional[int]], manager_id: int) -> List[int]:
    return sorted(emp_id for emp_id, mgr_id in index.items() if mgr_id == manager_id)


def reports_index(index: Mapping[int, Optional[int]]) -> Dict[int, List[int]]:
    """Reverse lookup {manager_id: [direct report ids]}."""
    reverse: Dict[int, List[int]] = {}
    for emp_id, mgr_id in index.items():
        if mgr_id is not None:
            reverse.setdefault(mgr_id, []).append(emp_id)
    for ids in reverse.values():
        ids.sort()
    return reverse
