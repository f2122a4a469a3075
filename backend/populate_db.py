import os
import sys
from datetime import datetime
from decimal import Decimal

import pandas as pd

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from database import SessionLocal, init_db
from models.product import Product
from models.users import User
from services import goods_receipts

# Configuration
DATA_DIR = os.path.join(os.path.dirname(__file__), "data_source")
OPENING_STOCK_FILE = os.path.join(DATA_DIR, "opening_stock.csv")
# End Configuration


def load_opening_stock(path=OPENING_STOCK_FILE):
    """Loads products and their opening stock, received through one goods receipt."""
    session = SessionLocal()
    try:
        stock_df = pd.read_csv(path, dtype={"code": str, "batch_number": str})
    except FileNotFoundError:
        print(f"Opening stock file not found: {path}")
        session.close()
        return

    stock_df["expiry_date"] = pd.to_datetime(stock_df["expiry_date"], errors="coerce").dt.date
    stock_df = stock_df.dropna(subset=["code", "name"])

    user = session.query(User).filter(User.role == "ADMIN").first()
    if not user:
        user = User(email="admin@example.com", role="ADMIN", first_name="Stock", last_name="Admin")
        session.add(user)
        session.commit()

    items = []
    for _, row in stock_df.iterrows():
        product = session.query(Product).filter(Product.code == row["code"]).first()
        if not product:
            product = Product(
                name=row["name"],
                code=row["code"],
                cost_price=Decimal(str(row["cost_price"])),
                reorder_level=int(row["reorder_level"]),
                quantity_on_hand=0,
            )
            session.add(product)
            session.flush()
        if int(row["quantity"]) <= 0:
            continue
        items.append({
            "product_id": product.id,
            "received_quantity": int(row["quantity"]),
            "cost_price": str(row["cost_price"]),
            "batch_number": row["batch_number"] if isinstance(row["batch_number"], str) else None,
            "expiry_date": row["expiry_date"] if not pd.isna(row["expiry_date"]) else None,
        })
    session.commit()

    if not items:
        print("No opening stock to receive.")
        session.close()
        return

    receipt = goods_receipts.create_draft_receipt(
        session, items, received_date=datetime.now(), received_by=user.id,
        supplier_name="Opening balance", notes="Opening stock import",
    )
    result = goods_receipts.finalize_receipt(session, receipt.id, performed_by=user.id)
    print(f"Received {len(result.batches)} batches on {result.receipt.receipt_number}.")
    session.close()


def populate_database():
    """Main execution function to populate database."""
    init_db()
    load_opening_stock()


if __name__ == "__main__":
    populate_database()
