"""
Push notification relay for the Hagz mobile app.
Routes device tokens to Expo or Firebase Cloud Messaging and reports delivery counts.
"""
