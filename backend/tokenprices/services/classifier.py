"""SuperToken classification."""

from typing import Dict, Iterable, List, Tuple

from ..models import ListedToken, Network, TokenCategory, is_zero_address


def is_native_wrapper_address(address: str, network: Network) -> bool:
    """Check whether an address is the network's native token wrapper."""
    wrapper = network.native_token_wrapper
    return bool(wrapper) and address.lower() == wrapper.lower()


def classify_token(token: ListedToken, network: Network) -> TokenCategory:
    """Decide which price query applies to a listed token."""
    if is_native_wrapper_address(token.id, network) and network.native_token_symbol:
        return TokenCategory.NATIVE_WRAPPER
    if is_zero_address(token.underlying_address):
        return TokenCategory.PURE
    return TokenCategory.ERC20_WRAPPER


def partition_tokens(
    tokens: Iterable[ListedToken],
    network: Network,
) -> Tuple[List[ListedToken], List[ListedToken]]:
    """Split listed tokens into (pure, erc20 wrappers).

    The native wrapper is priced separately and is left out of both lists.
    It is matched by address, so it is excluded even when the network has
    no native symbol and classify_token would call it pure.
    """
    buckets: Dict[TokenCategory, List[ListedToken]] = {
        TokenCategory.PURE: [],
        TokenCategory.ERC20_WRAPPER: [],
    }
    for token in tokens:
        if is_native_wrapper_address(token.id, network):
            continue
        buckets[classify_token(token, network)].append(token)
    return buckets[TokenCategory.PURE], buckets[TokenCategory.ERC20_WRAPPER]
