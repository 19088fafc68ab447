"""External providers: blockchain gateway and price oracle."""

from custody.providers.blockchain_gateway import BlockchainGateway
from custody.providers.http_gateway import HttpBlockchainGateway
from custody.providers.stub_gateway import InMemoryBlockchainGateway
from custody.providers.price_oracle import PriceOracle
from custody.providers.binance_oracle import BinancePriceOracle

__all__ = [
    "BlockchainGateway",
    "HttpBlockchainGateway",
    "InMemoryBlockchainGateway",
    "PriceOracle",
    "BinancePriceOracle",
]
