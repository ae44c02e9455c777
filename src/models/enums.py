"""
Enumerations shared by catalogue models and the costing services.

- ProductKind: how a product's cost is derived
- MarginHealth: traffic-light classification of a selling margin
"""

from enum import Enum


class ProductKind(str, Enum):
    """
    Kind of sellable product.

    Values:
        RESALE: Sold as-is; costs exactly one unit of its linked ingredient
        RECIPE: Composed of ingredient rows and/or sub-recipe rows
    """

    RESALE = "resale"
    RECIPE = "recipe"


class MarginHealth(str, Enum):
    """
    Margin health band for a selling channel.

    Values:
        GREEN: Margin at or above the category's green minimum
        YELLOW: Margin at or above the yellow minimum
        RED: Anything lower, or no selling price set
    """

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"
