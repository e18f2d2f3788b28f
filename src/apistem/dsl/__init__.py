from .association import POLYMORPHIC, Association
from .block_field import ArrayBlockField, BlockField, HashBlockField, NestedArrayField
from .blocks import AssociationsBlock, ConditionalsBlock, FieldsBlock
from .conditional import Conditional
from .configuration import AppendList, Configuration
from .field import Field

__all__ = [
    "POLYMORPHIC",
    "AppendList",
    "ArrayBlockField",
    "Association",
    "AssociationsBlock",
    "BlockField",
    "Conditional",
    "ConditionalsBlock",
    "Configuration",
    "Field",
    "FieldsBlock",
    "HashBlockField",
    "NestedArrayField",
]
