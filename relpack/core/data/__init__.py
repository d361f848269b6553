"""Static data shipped with relpack: staged file templates."""
