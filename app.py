from datetime import datetime, timezone

import stripe
from flask import Flask, jsonify, request
from flask_cors import CORS

from checkout import CheckoutStatus, CheckoutValidationError, PaymentEvent, create_session, verify_event
from config import configure_logging, get_settings
from notifications import handle_successful_payment

configure_logging(get_settings().log_level)

# Flask app
app = Flask(__name__)
CORS(app)


@app.route("/create-checkout-session", methods=["POST"])
def create_checkout_session():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    items = data.get("items") or []
    customer_info = data.get("customerInfo") or {}

    if not items:
        return jsonify({"error": "No items provided"}), 400
    if not isinstance(customer_info, dict):
        return jsonify({"error": "customerInfo must be an object"}), 400

    try:
        session = create_session(items, customer_info, get_settings())
    except CheckoutValidationError as e:
        return jsonify({"error": str(e)}), 400
    except stripe.StripeError as e:
        app.logger.error(f"Error creating checkout session: {e}")
        return jsonify({"error": e.user_message or str(e)}), 500

    app.logger.info(f"Checkout {session.id} {CheckoutStatus.SESSION_CREATED.value}")
    return jsonify({"url": session.url, "sessionId": session.id})


@app.route("/webhook", methods=["POST"])
def webhook_received():
    # Signature covers the exact bytes, never re-encode the body
    payload = request.get_data()
    sig_header = request.headers.get("Stripe-Signature")
    settings = get_settings()

    try:
        event = PaymentEvent.from_event(verify_event(payload, sig_header, settings.stripe_webhook_secret))
    except (ValueError, stripe.SignatureVerificationError) as e:
        app.logger.warning(f"⚠️ Webhook signature verification failed: {e}")
        return f"Webhook Error: {e}", 400

    if event.status is CheckoutStatus.PAID:
        handle_successful_payment(event, settings)
    elif event.status is CheckoutStatus.ABANDONED:
        app.logger.info(f"Checkout {event.session_id} {CheckoutStatus.ABANDONED.value}")
    else:
        app.logger.info(f"Unhandled event type: {event.type}")

    return jsonify({"received": True})


@app.route("/health")
def health():
    return jsonify({"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()})


if __name__ == "__main__":
    app.run(port=get_settings().port, debug=True)
