"""Activity / audit logging"""
