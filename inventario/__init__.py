"""inventario：库存台账 / 预留 / 调拨引擎。"""

__version__ = "0.1.0"
