"""Dependency resolution over the feature registry.

Synopsis:
Pure functions over the static dependency graph: transitive closure in
dependency-first order, reverse lookup of enabled dependents, and
consistency validation of a configuration snapshot.

Glossary:
- Closure: A feature plus every feature it transitively requires.
- Dependent: An enabled feature that lists another as a dependency.
"""

from __future__ import annotations

from typing import List, Mapping

from .errors import DependencyCycleError, UnknownFeatureError
from .registry import FeatureRegistry
from .results import Violation


class DependencyResolver:
    def __init__(self, registry: FeatureRegistry):
        self.registry = registry

    # --- Dependency closure ---
    # Purpose: Resolve every feature required to enable feature_id.
    # Inputs: Registered feature id.
    # Outputs: Ids in dependency-first order; feature_id is last.
    def resolve_closure(self, feature_id: str) -> List[str]:
        if feature_id not in self.registry:
            raise UnknownFeatureError([feature_id])

        ordered: List[str] = []
        visited: set = set()
        stack: List[str] = []

        def visit(current: str) -> None:
            stack.append(current)
            for dep in self.registry.get(current).dependencies:
                if dep in stack:
                    # Registry load rejects cycles; reaching here means the graph was corrupted.
                    raise DependencyCycleError(stack[stack.index(dep):] + [dep])
                if dep not in visited:
                    visit(dep)
            stack.pop()
            visited.add(current)
            ordered.append(current)

        visit(feature_id)
        return ordered

    def find_dependents(self, feature_id: str, config: Mapping[str, bool]) -> List[str]:
        """Enabled features in ``config`` that directly depend on ``feature_id``."""
        return [
            definition.id
            for definition in self.registry
            if config.get(definition.id) and feature_id in definition.dependencies
        ]

    def missing_dependencies(self, feature_id: str, config: Mapping[str, bool]) -> List[str]:
        definition = self.registry.get(feature_id)
        if definition is None:
            return []
        return [dep for dep in definition.dependencies if not config.get(dep)]

    def validate(self, config: Mapping[str, bool]) -> List[Violation]:
        violations: List[Violation] = []
        for definition in self.registry:
            if not config.get(definition.id):
                continue
            for dep in definition.dependencies:
                if not config.get(dep):
                    violations.append(Violation(feature=definition.id, missing_dependency=dep))
        return violations
