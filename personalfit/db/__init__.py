"""PostgreSQL persistence for the personalfit engine"""
