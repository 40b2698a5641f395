from flask import Flask

from schoolbooks.routes.auth import bp_auth
from schoolbooks.routes.cards import bp_cards
from schoolbooks.routes.lookups import bp_lookups
from schoolbooks.routes.messaging import bp_messaging
from schoolbooks.routes.notifications import bp_notifications
from schoolbooks.routes.orders import bp_orders
from schoolbooks.routes.payments import bp_payments
from schoolbooks.routes.products import bp_products
from schoolbooks.routes.reviews import bp_reviews
from schoolbooks.routes.saved_searches import bp_saved
from schoolbooks.routes.user_lists import bp_carts, bp_wishlist
from schoolbooks.routes.users import bp_users

BLUEPRINTS = (
    bp_auth,
    bp_users,
    bp_products,
    bp_orders,
    bp_payments,
    bp_carts,
    bp_wishlist,
    bp_notifications,
    bp_cards,
    bp_reviews,
    bp_saved,
    bp_lookups,
    bp_messaging,
)


def register_blueprints(app: Flask):
    for bp in BLUEPRINTS:
        app.register_blueprint(bp)
