"""
bagman: a library for creating, updating, validating, and packaging bags
conforming to the BagIt specification (RFC 8493).

The main entry point is the Bag class:

    from bagman import Bag
    bag = Bag("/path/to/newbag", bag_info={"Contact-Name": "Gurn Cranston"})
    bag.add_file("results.csv", "data/results.csv")
    bag.update()
    errors = bag.validate()
"""
from .constants import Version
from .bag import Bag, open_bag, create_bag
from .hashes import HashRegistry
