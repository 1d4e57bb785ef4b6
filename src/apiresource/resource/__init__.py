"""Resource definition engine.

Public surface:
    definition_for / invalidate        - memoized resource definitions
    add_scopes / add_static_scopes     - request parameter dispatch
    register_scope / scopes_for        - scope registry
    scope / protected_scope / static_scope - class-body scope declarations
    ResourceModel                      - mixin exposing all of the above as classmethods
"""

from apiresource.resource.cache import definition_for, invalidate
from apiresource.resource.classifier import classify_type
from apiresource.resource.dispatch import add_scopes, add_static_scopes
from apiresource.resource.model import (
    ResourceModel,
    alias_attribute,
    assign_attributes,
    belongs_to_remote,
    declare_visibility,
    virtual_attribute,
)
from apiresource.resource.models import (
    Arity,
    AssociationKind,
    Associations,
    AttributeSets,
    Param,
    ResourceDefinition,
    ScopeDescriptor,
    TypeTag,
    Visibility,
)
from apiresource.resource.scopes import (
    apply_scope,
    protected_scope,
    register_scope,
    scope,
    scopes_for,
    static_scope,
)
from apiresource.resource.signature import classify
from apiresource.resource.typecasts import attribute_typecasts, typecast_for

__all__ = [
    # Definition
    "definition_for",
    "invalidate",
    "classify_type",
    "ResourceDefinition",
    "AttributeSets",
    "Associations",
    "AssociationKind",
    "TypeTag",
    "Visibility",
    # Typecasts
    "typecast_for",
    "attribute_typecasts",
    # Scopes
    "classify",
    "Arity",
    "Param",
    "ScopeDescriptor",
    "register_scope",
    "scopes_for",
    "apply_scope",
    "scope",
    "protected_scope",
    "static_scope",
    # Dispatch
    "add_scopes",
    "add_static_scopes",
    # Registration
    "ResourceModel",
    "declare_visibility",
    "virtual_attribute",
    "alias_attribute",
    "belongs_to_remote",
    "assign_attributes",
]
