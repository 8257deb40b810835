"""Order confirmation template — rendered once an order has been placed."""


class OrderConfirmationTemplate:
    @staticmethod
    def render(order, user: dict | None = None) -> dict:
        user = user or {}
        name = user.get("name") or order.shipping_address.full_name
        lines = "\n".join(
            f"  {item.name} x {item.quantity} @ {item.unit_price:.2f}" for item in order.items
        )
        pricing = order.pricing
        return {
            "subject": f"Order Confirmed - #{order.reference}",
            "body": (
                f"Hi {name},\n\n"
                f"Thank you for your order #{order.reference}.\n\n"
                f"{lines}\n\n"
                f"Subtotal: {pricing.subtotal:.2f}\n"
                f"Shipping: {pricing.shipping:.2f}\n"
                f"Tax: {pricing.tax:.2f}\n"
                f"Total: {pricing.total:.2f}\n\n"
                f"Payment method: {order.payment_method}\n\n"
                "We'll let you know as soon as your order ships."
            ),
        }
