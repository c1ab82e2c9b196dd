# Oracle package
from .models import CartLine, CartObservation, CartSnapshot, ObservedRow, ProductRef
from .cart_oracle import CartOracle, CartSource
from .login_probe import LoginProbe, ProbeResult

__all__ = [
    'CartLine', 'CartObservation', 'CartSnapshot', 'ObservedRow', 'ProductRef',
    'CartOracle', 'CartSource', 'LoginProbe', 'ProbeResult',
]
