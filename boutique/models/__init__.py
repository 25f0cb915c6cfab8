from .produit import *
from .user import *
from .refresh_token import *
