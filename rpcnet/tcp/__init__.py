"""Separator-framed JSON-RPC server over TCP, with a dispatcher for pushing to peers."""