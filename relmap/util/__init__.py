from relmap.util import db
from relmap.util import convert
