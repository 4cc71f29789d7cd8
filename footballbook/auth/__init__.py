"""Credential issuance, token handling and input validation"""
