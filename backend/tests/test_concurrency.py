"""
Concurrency tests on a file-backed SQLite database.

Each worker runs in its own thread with its own app context (and so its own
session and connection), the way concurrent requests do.
"""

import os
import tempfile
import threading
import unittest
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

from refurbshop import create_app
from refurbshop.errors import ConflictError, TransientStoreConflict
from refurbshop.extensions import db
from refurbshop.models import Device, InventoryItem, LedgerEvent, Order, OrderLine
from refurbshop.models.inventory import new_id
from refurbshop.services import checkout_service, reconciliation_service
from refurbshop.validation import CheckoutRequest, ShippingAddress


ADDRESS = ShippingAddress(line1="1 George St", city="Sydney", region="NSW", postcode="2000", country="AU")


def _request(inventory_ids, n=0):
    return CheckoutRequest(
        inventory_ids=tuple(inventory_ids),
        customer_name=f"Customer {n}",
        customer_email=f"customer{n}@example.com",
        shipping_address=ADDRESS,
    )


class ConcurrencyTests(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = os.path.join(self.tmpdir.name, "concurrency.db")
        self.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "SQLALCHEMY_ENGINE_OPTIONS": {"connect_args": {"timeout": 30}},
            "PAYMENT_MODE": "stub",
            "TXN_RETRY_ATTEMPTS": 10,
            "TXN_RETRY_BACKOFF": 0.01,
        })

        with self.app.app_context():
            db.drop_all()
            db.create_all()

            device = Device(make="Samsung", model="Galaxy S22", storage="256GB", category="Phone")
            db.session.add(device)
            db.session.commit()
            self.device_id = device.id

    def tearDown(self):
        with self.app.app_context():
            db.session.remove()
            db.drop_all()
            db.session.remove()
            db.engine.dispose()
        self.tmpdir.cleanup()

    def _seed_items(self, count):
        with self.app.app_context():
            ids = []
            for n in range(count):
                item = InventoryItem(
                    id=new_id(),
                    inventory_number=n + 1,
                    serial=f"CONC-{n:04d}",
                    device_id=self.device_id,
                    category="Phone",
                    cosmetic_grade="A",
                    sell_price_aud=Decimal("199.00"),
                    status="listed",
                    listed=True,
                    source_type="bulk",
                    images=[],
                )
                db.session.add(item)
                ids.append(item.id)
            db.session.commit()
            return ids

    def test_single_item_sold_exactly_once(self):
        item_id = self._seed_items(1)[0]
        results = []
        lock = threading.Lock()
        barrier = threading.Barrier(8)

        def worker(n):
            with self.app.app_context():
                try:
                    barrier.wait()
                    result = checkout_service.checkout(_request([item_id], n))
                    with lock:
                        results.append(result)
                except Exception as exc:
                    with lock:
                        results.append(exc)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        successes = [r for r in results if not isinstance(r, Exception)]
        failures = [r for r in results if isinstance(r, Exception)]
        self.assertEqual(len(successes), 1)
        self.assertEqual(len(failures), 7)
        for exc in failures:
            self.assertIsInstance(exc, ConflictError)
            self.assertNotIsInstance(exc, TransientStoreConflict)
            self.assertEqual(exc.details["unavailable"], [item_id])

        with self.app.app_context():
            self.assertEqual(db.session.query(Order).count(), 1)
            item = db.session.get(InventoryItem, item_id)
            self.assertEqual(item.status, "sold")

    def test_order_numbers_unique_under_load(self):
        item_ids = self._seed_items(100)

        def worker(n):
            with self.app.app_context():
                try:
                    return checkout_service.checkout(_request([item_ids[n]], n)).order_number
                finally:
                    db.session.remove()

        with ThreadPoolExecutor(max_workers=10) as pool:
            numbers = list(pool.map(worker, range(100)))

        self.assertEqual(len(set(numbers)), 100)
        self.assertEqual(sorted(numbers), list(range(1001, 1101)))

    def test_concurrent_webhook_deliveries_apply_once(self):
        item_ids = self._seed_items(2)
        with self.app.app_context():
            order = Order(
                id=new_id(),
                order_number=5000,
                customer_name="Race",
                customer_email="race@example.com",
                shipping_address=ADDRESS.to_dict(),
                subtotal_aud=Decimal("398.00"),
                shipping_aud=Decimal("0.00"),
                gst_aud=Decimal("36.18"),
                total_aud=Decimal("398.00"),
                payment_status="pending",
                status="pending",
                payment_mode="stripe",
            )
            db.session.add(order)
            for item_id in item_ids:
                item = db.session.get(InventoryItem, item_id)
                item.status = "reserved"
                item.listed = False
            for n, item_id in enumerate(item_ids):
                order.lines.append(OrderLine(
                    inventory_item_id=item_id,
                    inventory_number=n + 1,
                    device_id=self.device_id,
                    description="Samsung Galaxy S22 256GB - Grade A",
                    price_aud=Decimal("199.00"),
                ))
            db.session.commit()
            order_id = order.id

        outcomes = []
        lock = threading.Lock()

        def worker():
            with self.app.app_context():
                try:
                    result = reconciliation_service.on_payment_completed(order_id, "pi_race")
                    with lock:
                        outcomes.append(result.outcome)
                finally:
                    db.session.remove()

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(outcomes.count(reconciliation_service.OUTCOME_APPLIED), 1)
        self.assertEqual(outcomes.count(reconciliation_service.OUTCOME_ALREADY_PAID), 4)

        with self.app.app_context():
            self.assertEqual(
                db.session.query(LedgerEvent).filter_by(order_id=order_id, event_type="order.paid").count(),
                1,
            )
            for item_id in item_ids:
                self.assertEqual(db.session.get(InventoryItem, item_id).status, "sold")


if __name__ == "__main__":
    unittest.main()
