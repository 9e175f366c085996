"""Streamlit What-If explorer."""
