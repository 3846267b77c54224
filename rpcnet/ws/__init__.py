"""WebSocket namespace; it holds no modules in this release."""