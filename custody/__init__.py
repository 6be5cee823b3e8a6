"""
custody package

Dual-control custody wallet: two directors jointly govern the wallet
configuration through proposals, and held funds are released to the payout
targets. The price-threshold check is exposed next to the release path.
"""
