import sqlite3
import sys

DB = sys.argv[1] if len(sys.argv) > 1 else "rentalhub.db"
PRODUCT = sys.argv[2] if len(sys.argv) > 2 else None

conn = sqlite3.connect(DB)
cur = conn.cursor()

print("=== Products ===")
cur.execute("SELECT id, sku, name, quantity_on_hand, is_rentable, active FROM products ORDER BY id")
for r in cur.fetchall():
    print(r)

print("\n=== Reservation counts by status ===")
cur.execute("SELECT status, COUNT(*), COALESCE(SUM(quantity), 0) FROM reservations GROUP BY status")
for r in cur.fetchall():
    print(r)

if PRODUCT:
    print(f"\n=== Reservations for product={PRODUCT} ===")
    cur.execute(
        "SELECT id, quantity, start_date, end_date, source_type, source_id, status, priority, expires_at "
        "FROM reservations WHERE product_id=? ORDER BY start_date, id LIMIT 100",
        (PRODUCT,),
    )
    for r in cur.fetchall():
        print(r)

conn.close()
