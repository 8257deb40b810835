"""Ordering load test scenarios.

CheckoutJourney walks one shopper from product setup through checkout,
tracking and either delivery or cancellation. LastUnitRaceUser hammers a
small shared pool of low-stock products so checkouts contend for the same
stock locks; it reports how often the API answered with a retryable 409 and
checks that stock never goes negative.
"""

import random

from locust import HttpUser, SequentialTaskSet, between, task

from loadtests.data_generators import customer_id, order_data, product_data
from loadtests.helpers.response import extract_error_detail
from loadtests.helpers.state import ShopperState

ADMIN_PATH = ["confirmed", "preparing", "shipped", "delivered"]


class CheckoutJourney(SequentialTaskSet):
    """Register products -> fill cart -> checkout -> track -> deliver or cancel."""

    def on_start(self):
        self.state = ShopperState(customer_id=customer_id())

    @task
    def register_products(self):
        for _ in range(random.randint(1, 3)):
            with self.client.post(
                "/products",
                json=product_data(),
                catch_response=True,
                name="POST /products",
            ) as resp:
                if resp.status_code == 201:
                    self.state.product_ids.append(resp.json()["product_id"])
                else:
                    resp.failure(f"Register product failed: {resp.status_code} — {extract_error_detail(resp)}")
                    self.interrupt()

    @task
    def fill_cart(self):
        for product_id in self.state.product_ids:
            with self.client.post(
                f"/carts/{self.state.customer_id}/items",
                json={"product_id": product_id, "quantity": random.randint(1, 3)},
                catch_response=True,
                name="POST /carts/{customer_id}/items",
            ) as resp:
                if resp.status_code != 200:
                    resp.failure(f"Add to cart failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def checkout(self):
        with self.client.post(
            "/orders",
            json=order_data(self.state.customer_id),
            catch_response=True,
            name="POST /orders",
        ) as resp:
            if resp.status_code == 201:
                self.state.order_reference = resp.json()["reference"]
                self.state.current_status = "pending"
            else:
                resp.failure(f"Checkout failed: {resp.status_code} — {extract_error_detail(resp)}")
                self.interrupt()

    @task
    def track(self):
        self.client.get(
            f"/orders/{self.state.order_reference}/track",
            params={"customer_id": self.state.customer_id},
            name="GET /orders/{reference}/track",
        )

    @task
    def finish(self):
        if random.random() < 0.3:
            with self.client.put(
                f"/orders/{self.state.order_reference}/cancel",
                json={"customer_id": self.state.customer_id, "reason": "Load test cancellation"},
                catch_response=True,
                name="PUT /orders/{reference}/cancel",
            ) as resp:
                if resp.status_code != 200:
                    resp.failure(f"Cancel failed: {resp.status_code} — {extract_error_detail(resp)}")
        else:
            for status in ADMIN_PATH:
                with self.client.put(
                    f"/admin/orders/{self.state.order_reference}/status",
                    json={"status": status},
                    catch_response=True,
                    name="PUT /admin/orders/{reference}/status",
                ) as resp:
                    if resp.status_code != 200:
                        resp.failure(f"Transition to {status} failed: {resp.status_code} — {extract_error_detail(resp)}")
                        break
                    self.state.current_status = status
        self.interrupt()


class CheckoutUser(HttpUser):
    tasks = [CheckoutJourney]
    wait_time = between(0.5, 2)
    weight = 3


class LastUnitRaceUser(HttpUser):
    """Many shoppers competing for a handful of nearly sold-out products."""

    wait_time = between(0.05, 0.3)
    weight = 1
    shared_products: list[str] = []
    pool_size = 3

    def on_start(self):
        cls = type(self)
        if len(cls.shared_products) < cls.pool_size:
            resp = self.client.post("/products", json=product_data(stock=20), name="POST /products")
            if resp.status_code == 201:
                cls.shared_products.append(resp.json()["product_id"])

    @task
    def race_for_stock(self):
        if not self.shared_products:
            return
        customer = customer_id()
        product_id = random.choice(self.shared_products)
        self.client.post(
            f"/carts/{customer}/items",
            json={"product_id": product_id, "quantity": 1},
            name="POST /carts/{customer_id}/items",
        )
        with self.client.post(
            "/orders",
            json=order_data(customer),
            catch_response=True,
            name="POST /orders [contended]",
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 400 and "stock" in resp.json().get("error", {}):
                # Sold out is an expected outcome of the race
                resp.success()
            elif resp.status_code == 409 and resp.json().get("retryable"):
                resp.failure("Checkout lost the stock lock race (retryable)")
            else:
                resp.failure(f"Contended checkout failed: {resp.status_code} — {extract_error_detail(resp)}")

    @task
    def check_stock_never_negative(self):
        if not self.shared_products:
            return
        product_id = random.choice(self.shared_products)
        with self.client.get(
            f"/products/{product_id}",
            catch_response=True,
            name="GET /products/{id}",
        ) as resp:
            if resp.status_code == 200 and resp.json()["stock"] < 0:
                resp.failure(f"Negative stock for {product_id}: {resp.json()['stock']}")
