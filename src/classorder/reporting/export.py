"""CSV export of submitted orders for the person placing the class order.

The file opens cleanly in Excel (UTF-8 with a byte-order mark) and has two
sections: a per-item summary with a grand total, then one row per student
in seat order.
"""

import csv
import io
from datetime import date

from classorder.reporting.stats import seat_sort_key, submitted_orders, tally_items

BOM = "\ufeff"

SUMMARY_TITLE = "=== 彙總統計 ==="
SUMMARY_HEADER = ["品項", "數量", "金額"]
TOTAL_LABEL = "總計"
DETAIL_TITLE = "=== 個人明細 ==="
DETAIL_HEADER = ["座號", "姓名", "餐點內容", "總金額"]


def item_details(order):
    return "; ".join(f"{line.name}*{line.quantity}" for line in order.items)


def export_csv(orders) -> str:
    orders = list(orders)
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    tallies = tally_items(orders)
    writer.writerow([SUMMARY_TITLE])
    writer.writerow(SUMMARY_HEADER)
    for row in tallies:
        writer.writerow([row.name, row.quantity, row.revenue])
    writer.writerow([TOTAL_LABEL, "", sum(row.revenue for row in tallies)])
    buffer.write("\n")

    writer.writerow([DETAIL_TITLE])
    writer.writerow(DETAIL_HEADER)
    for order in sorted(submitted_orders(orders), key=lambda order: seat_sort_key(order.seat_number)):
        writer.writerow([order.seat_number, order.user_name, item_details(order), order.total_price])

    return BOM + buffer.getvalue()


def export_filename(day=None) -> str:
    day = day or date.today()
    return f"class_order_{day.isoformat()}.csv"
