# app/core/locales.py

# Errors
ERROR_SESSION_ID_MISSING = "The X-Session-ID header is required."
ERROR_MENU_ITEM_NOT_FOUND = "Menu item not found."
ERROR_MENU_ITEM_UNAVAILABLE = "'{name}' is currently unavailable."
ERROR_UNKNOWN_VARIATION = "The selected option is not offered for '{name}'."
ERROR_UNKNOWN_ADD_ON = "The selected add-on is not offered for '{name}'."
ERROR_LINE_NOT_IN_CART = "This item is not in your cart."
ERROR_CART_EMPTY = "Your cart is empty."
ERROR_CHECKOUT_NOT_AT_PAYMENT = "Please complete your order details first."
ERROR_CHECKOUT_BUSY = "Your order is already being placed."
ERROR_AFFILIATE_NOT_FOUND = "Affiliate not found."
ERROR_DUPLICATE_REFERRAL_CODE = "Referral code '{code}' is already taken."
ERROR_ORDER_NOT_FOUND = "Order not found."
ERROR_INVALID_CREDENTIALS = "Invalid credentials."
ERROR_SAVE_ORDER_FAILED = "Failed to save order to database: {reason}"

# Success
SUCCESS_ITEM_REMOVED_FROM_CART = "Item removed from cart."
SUCCESS_CART_CLEARED = "Cart cleared."
SUCCESS_AFFILIATE_DELETED = "Affiliate deleted."
