"""Daily rankings, special events, weekly statistics and season scoring"""
