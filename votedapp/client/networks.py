from typing import Optional, Union

UNKNOWN_NETWORK = "Unknown Network"

NETWORK_NAMES = {
    1: "Ethereum Mainnet",
    3: "Ropsten Test Network",
    4: "Rinkeby Test Network",
    5: "Goerli Test Network",
    42: "Kovan Test Network",
    56: "Binance Smart Chain",
    137: "Polygon Mainnet",
    80001: "Polygon Mumbai Test Network",
    11155111: "Sepolia Test Network",
    17000: "Ethereum Holesky Testnet",
}


def parse_chain_id(value: Union[int, str, None]) -> Optional[int]:
    """Chain id from an int, a ``0x`` hex string or a decimal string; None if unparseable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    text = str(value).strip()
    try:
        if text.lower().startswith("0x"):
            return int(text, 16)
        return int(text)
    except ValueError:
        return None


def network_name(chain_id: Union[int, str, None]) -> str:
    return NETWORK_NAMES.get(parse_chain_id(chain_id), UNKNOWN_NETWORK)
