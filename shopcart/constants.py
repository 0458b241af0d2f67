DISCOUNT_SUBTOTAL_PERCENTAGE = "subtotal_percentage"
DISCOUNT_TOTAL_PERCENTAGE = "total_percentage"
DISCOUNT_SUBTOTAL_FIXED_AMOUNT = "subtotal_fixed_amount"
DISCOUNT_TOTAL_FIXED_AMOUNT = "total_fixed_amount"

DISCOUNT_TYPES = {
    DISCOUNT_SUBTOTAL_PERCENTAGE: "Percentage over subtotal",
    DISCOUNT_TOTAL_PERCENTAGE: "Percentage over total",
    DISCOUNT_SUBTOTAL_FIXED_AMOUNT: "Fixed amount over subtotal",
    DISCOUNT_TOTAL_FIXED_AMOUNT: "Fixed amount over total",
}

PERCENTAGE_DISCOUNTS = (DISCOUNT_SUBTOTAL_PERCENTAGE, DISCOUNT_TOTAL_PERCENTAGE)
FIXED_DISCOUNTS = (DISCOUNT_SUBTOTAL_FIXED_AMOUNT, DISCOUNT_TOTAL_FIXED_AMOUNT)

# a subtotal-% rule and a total-% rule can't live in the same cart
EXCLUSIVE_DISCOUNTS = {
    DISCOUNT_SUBTOTAL_PERCENTAGE: DISCOUNT_TOTAL_PERCENTAGE,
    DISCOUNT_TOTAL_PERCENTAGE: DISCOUNT_SUBTOTAL_PERCENTAGE,
}

SCOPE_SUBTOTAL = "subtotal"
SCOPE_TOTAL = "total"

# how LineItem.create reads the incoming price
PRICE_WITHOUT_TAX = 1
PRICE_WITH_TAX = 2

EVENT_ITEM_ADDED = "cart.added"
EVENT_ITEM_REMOVE = "cart.remove"
EVENT_ITEM_REMOVED = "cart.removed"
EVENT_DESTROY = "cart.destroy"
EVENT_DESTROYED = "cart.destroyed"
EVENT_BATCH = "cart.batch"
EVENT_PRICE_RULE_ADDED = "cart.price_rule_added"
EVENT_DISCOUNT_TRUNCATED = "cart.discount_truncated"
