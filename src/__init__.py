"""Source tree for the checkout demo.

Products live in :mod:`products`, carts in :mod:`cart` and the
validation-and-settlement sequence in :mod:`checkout`.  :mod:`cli`
runs the fixed demo scenario.
"""
