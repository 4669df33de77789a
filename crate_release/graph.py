"""Dependency graph utilities.

Determines the order in which workspace crates must be published so that
every crate reaches the registry after the crates it needs at build time.
Dev dependencies are a softer constraint: they only matter for running a
crate's own tests, so a dev edge gives way when it points against a normal
edge between the same two crates.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from .errors import CircularDependencyError

if TYPE_CHECKING:
    from .crate import Crate, CrateDep


def reachable_dependencies(crate: Crate) -> dict[str, CrateDep]:
    """Map the in-repo crates that crate depends on, directly or not.

    Normal dependencies are followed transitively, since everything a
    normal dependency needs must be published before it. Dev dependencies
    are only taken from crate itself: dev dependencies of a dependency are
    never built for its dependents. A crate reachable both ways is reported
    as a normal dependency.

    Example:
        app → core (normal), core → macros (normal), app → tools (dev)
        reachable_dependencies(app) → {core: normal, macros: normal, tools: dev}
    """
    found: dict[str, CrateDep] = {}
    immediate = crate.immediate_dependencies_in_repo()
    stack = [dep for dep in immediate if not dep.is_dev]
    while stack:
        dep = stack.pop()
        if dep.crate.name in found:
            continue
        found[dep.crate.name] = dep
        stack.extend(
            d for d in dep.crate.immediate_dependencies_in_repo() if not d.is_dev
        )
    for dep in immediate:
        if dep.is_dev:
            found.setdefault(dep.crate.name, dep)
    return found


def resolve_publish_order(crates: Iterable[Crate]) -> list[Crate]:
    """Sort crates into a publish order.

    Crates are inserted one at a time in input order. Each one is placed
    right before the first already-placed crate that depends on it, except
    that a placed crate which only dev-depends on it while it normally
    depends on that crate is skipped over. Crates nothing placed depends on
    go to the end. A crate is never placed ahead of its own normal
    dependencies, even when a placed crate dev-depends on it. The result is
    deterministic for a given input order.

    Args:
        crates: The crates to sort, typically every crate of a Repo.

    Returns:
        The same crates, each after all of its normal dependencies.

    Raises:
        CircularDependencyError: If two crates depend on each other through
            edges of the same kind (both normal or both dev).

    Example:
        If app depends on core, and core dev-depends on app:
        resolve_publish_order([app, core]) → [core, app]
    """
    sorted_crates: list[Crate] = []
    reach: dict[str, dict[str, CrateDep]] = {}

    for crate in crates:
        crate_deps = reach.setdefault(crate.name, reachable_dependencies(crate))
        insert_index = len(sorted_crates)

        for i, other in enumerate(sorted_crates):
            other_to_crate = reach[other.name].get(crate.name)
            if other_to_crate is None:
                continue
            crate_to_other = crate_deps.get(other.name)
            if (
                crate_to_other is not None
                and crate_to_other.is_dev == other_to_crate.is_dev
            ):
                raise CircularDependencyError(crate.name, other.name)
            if crate_to_other is None or not other_to_crate.is_dev:
                insert_index = i
                break
            # other only dev-depends on crate, which normally depends on other

        # a dev dependent never pulls a crate ahead of its normal dependencies
        lowest_index = max(
            (
                i + 1
                for i, other in enumerate(sorted_crates)
                if other.name in crate_deps and not crate_deps[other.name].is_dev
            ),
            default=0,
        )
        if insert_index < lowest_index:
            for other in sorted_crates[insert_index:lowest_index]:
                other_to_crate = reach[other.name].get(crate.name)
                if other_to_crate is not None and not other_to_crate.is_dev:
                    raise CircularDependencyError(crate.name, other.name)
            insert_index = lowest_index

        sorted_crates.insert(insert_index, crate)

    return sorted_crates
