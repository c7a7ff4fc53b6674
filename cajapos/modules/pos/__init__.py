"""
Módulo POS - punto de venta

Coordina los servicios del cliente de caja:
- Catálogo: búsqueda paginada de productos activos y categorías
- Carrito: líneas, descuentos por monto y observaciones
- Caja: apertura, cierre y resumen del cierre
- Ventas: registro atómico vía RPC registrar_venta

REGLAS DE NEGOCIO:
- Solo se puede vender con una caja abierta
- El carrito se vacía únicamente cuando el backend confirma la venta
"""
