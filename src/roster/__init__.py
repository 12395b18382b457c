"""Alliance leaders, train conductor rotation, VIP selections and removed players"""
