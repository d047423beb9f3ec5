"""Static menu catalogue.

The menu is fixed for the ordering event: it is loaded once at import time and
never changes while the client runs. Prices are whole currency units.
"""

from dataclasses import dataclass
from enum import Enum

from protean.exceptions import ObjectNotFoundError, ValidationError


class Category(Enum):
    MAIN = "MAIN"
    SET = "SET"
    SNACK = "SNACK"
    DRINK = "DRINK"


CATEGORY_LABELS = {
    Category.MAIN: "主餐",
    Category.SET: "配餐",
    Category.SNACK: "點心",
    Category.DRINK: "飲料",
}


@dataclass(frozen=True)
class MenuItem:
    """A purchasable menu entry."""

    item_id: str
    name: str
    price: int
    category: Category

    def __post_init__(self):
        if self.price <= 0:
            raise ValueError(f"Menu item {self.item_id!r} must have a positive price")

    @property
    def category_label(self):
        return CATEGORY_LABELS[self.category]


def _item(item_id, name, price, category):
    return MenuItem(item_id=item_id, name=name, price=price, category=Category(category))


MENU_ITEMS: tuple[MenuItem, ...] = (
    # Value meals
    _item("m1", "大麥克", 78, "MAIN"),
    _item("m2", "雙層牛肉吉事堡", 72, "MAIN"),
    _item("m3", "嫩煎雞腿堡", 83, "MAIN"),
    _item("m4", "麥香雞", 48, "MAIN"),
    _item("m5", "麥克雞塊(6塊)", 68, "MAIN"),
    _item("m6", "麥克雞塊(10塊)", 109, "MAIN"),
    _item("m7", "勁辣雞腿堡", 78, "MAIN"),
    _item("m8", "麥脆雞腿(2塊)", 126, "MAIN"),
    _item("m9", "雙層麥香雞", 78, "MAIN"),
    _item("m10", "麥香魚", 52, "MAIN"),
    _item("m11", "四盎司牛肉堡", 92, "MAIN"),
    _item("m12", "雙層四盎司牛肉堡", 132, "MAIN"),
    _item("m13", "麥脆雞腿(1塊)", 69, "MAIN"),
    # Signature series
    _item("sig1", "BLT安格斯黑牛堡", 122, "MAIN"),
    _item("sig2", "BLT嫩煎雞腿堡", 122, "MAIN"),
    _item("sig3", "蕈菇安格斯黑牛堡", 132, "MAIN"),
    _item("sig4", "蕈菇主廚鷄腿堡", 132, "MAIN"),
    _item("sig5", "帕瑪森安格斯牛肉堡", 127, "MAIN"),
    _item("sig6", "帕瑪森主廚鷄腿堡", 127, "MAIN"),
    # Limited time
    _item("lim1", "炸蝦天婦羅安格斯牛肉堡", 134, "MAIN"),
    _item("lim2", "炸蝦天婦羅辣鷄堡", 134, "MAIN"),
    _item("lim3", "雙蝦天婦羅堡", 134, "MAIN"),
    # Set add-ons, each one attaches to a main
    _item("s1", "A經典配餐 (中薯+38飲)", 65, "SET"),
    _item("s2", "B清爽配餐 (沙拉+38飲)", 70, "SET"),
    _item("s3", "C勁脆配餐 (麥脆雞+38飲)", 84, "SET"),
    _item("s4", "D炫冰配餐 (冰炫風+小薯+38飲)", 99, "SET"),
    _item("s5", "E豪吃配餐 (雞塊4塊+小薯+38飲)", 99, "SET"),
    _item("s6", "F地瓜配餐 (地瓜條+38飲)", 81, "SET"),
    # Snacks
    _item("sn1", "麥克雞塊(4塊)", 48, "SNACK"),
    _item("sn2", "薯條(小)", 40, "SNACK"),
    _item("sn3", "薯條(中)", 50, "SNACK"),
    _item("sn4", "薯條(大)", 66, "SNACK"),
    _item("sn5", "黃金地瓜條", 66, "SNACK"),
    _item("sn6", "勁辣香雞翅(1對)", 49, "SNACK"),
    _item("sn7", "蘋果派", 40, "SNACK"),
    _item("sn8", "OREO冰炫風", 59, "SNACK"),
    _item("sn9", "蛋捲冰淇淋", 18, "SNACK"),
    # Drinks
    _item("d1", "可口可樂(中)", 38, "DRINK"),
    _item("d2", "雪碧(中)", 38, "DRINK"),
    _item("d3", "檸檬紅茶(中)", 38, "DRINK"),
    _item("d4", "無糖綠茶(中)", 43, "DRINK"),
    _item("d5", "玉米湯(小)", 45, "DRINK"),
    _item("d6", "玉米湯(大)", 55, "DRINK"),
    _item("d7", "焦糖冰奶茶", 68, "DRINK"),
    _item("d8", "蜂蜜奶茶(大)", 68, "DRINK"),
)

_MENU_BY_ID: dict[str, MenuItem] = {item.item_id: item for item in MENU_ITEMS}


def menu_items(category: Category | str | None = None) -> list[MenuItem]:
    """List the menu in catalogue order, optionally limited to one category."""
    if category is None:
        return list(MENU_ITEMS)
    try:
        category = Category(category)
    except ValueError:
        raise ValidationError({"category": [f"Unknown menu category {category!r}"]}) from None
    return [item for item in MENU_ITEMS if item.category == category]


def get_menu_item(item_id: str) -> MenuItem:
    """Look up a menu item by id."""
    try:
        return _MENU_BY_ID[item_id]
    except KeyError:
        raise ObjectNotFoundError(f"Menu item {item_id!r} does not exist") from None
