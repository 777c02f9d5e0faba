"""
bartercart — движок корзины и построения trade offer для barter-бота.

Пакеты:
- core/        : доменные модели, математика валют, контракты метаданных
- cart/        : state machine корзины, DonationCart, UserCart
- gatekeeper/  : pre-send гейты (trust screen, dupe check)
"""
